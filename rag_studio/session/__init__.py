"""Pipeline session state machine and in-memory session registry."""
from rag_studio.session.manager import SessionManager
from rag_studio.session.pipeline import PipelineSession, Stage

__all__ = ["PipelineSession", "SessionManager", "Stage"]
