"""Answer synthesis: query plus retrieved context in, free-text answer out."""
from typing import Dict, List

import structlog

from rag_studio import config
from rag_studio.errors import InvalidInputError
from rag_studio.llm_client import OpenAIClient

logger = structlog.get_logger()

SYSTEM_PROMPT = (
    "You are an assistant that answers questions based on the provided document "
    "content. Give accurate, helpful answers grounded in the document. Answer in "
    "the language of the question."
)

USER_PROMPT_TEMPLATE = """Answer the question using the document content below.

Document content:
{context}

Question: {query}"""


class AnswerSynthesizer:
    """Generates an answer from a query and the concatenated retrieved chunks."""

    def __init__(
        self,
        client: OpenAIClient,
        model: str = None,
        temperature: float = None,
        max_tokens: int = None,
    ):
        self.client = client
        self.model = model or config.CHAT_MODEL
        self.temperature = config.CHAT_TEMPERATURE if temperature is None else temperature
        self.max_tokens = max_tokens or config.CHAT_MAX_TOKENS

    def build_messages(self, query: str, context: str) -> List[Dict[str, str]]:
        return [
            {"role": "system", "content": SYSTEM_PROMPT},
            {
                "role": "user",
                "content": USER_PROMPT_TEMPLATE.format(context=context, query=query),
            },
        ]

    async def answer(self, query: str, context: str) -> str:
        """Answer ``query`` using ``context``.

        Args:
            query: User question
            context: Retrieved chunk texts joined into one string

        Returns:
            Answer text

        Raises:
            InvalidInputError: If query or context is missing
            AuthError: If the credential is rejected
            UpstreamError: On service failure
        """
        if not isinstance(query, str) or not query.strip():
            raise InvalidInputError("No question provided")
        if not isinstance(context, str) or not context.strip():
            raise InvalidInputError("No context provided")

        answer = await self.client.chat(
            self.build_messages(query, context),
            model=self.model,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
        )

        logger.info(
            "answer_generated",
            query_length=len(query),
            context_length=len(context),
            answer_length=len(answer),
        )

        return answer
