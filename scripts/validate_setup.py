#!/usr/bin/env python
"""Validate setup - check dependencies, configuration and the OpenAI key."""
import sys
import asyncio

# Color codes for terminal output
GREEN = "\033[92m"
RED = "\033[91m"
YELLOW = "\033[93m"
BLUE = "\033[94m"
RESET = "\033[0m"

def print_success(msg):
    print(f"{GREEN}✓{RESET} {msg}")

def print_error(msg):
    print(f"{RED}✗{RESET} {msg}")

def print_info(msg):
    print(f"{BLUE}ℹ{RESET} {msg}")

def print_warning(msg):
    print(f"{YELLOW}⚠{RESET} {msg}")

def print_section(title):
    print(f"\n{BLUE}{'='*60}{RESET}")
    print(f"{BLUE}{title:^60}{RESET}")
    print(f"{BLUE}{'='*60}{RESET}\n")

async def main():
    print_section("RAG Studio - Setup Validation")

    errors = []
    warnings = []

    # 1. Python version check
    print_section("1. Python Environment")
    python_version = f"{sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}"
    print_info(f"Python version: {python_version}")
    if sys.version_info >= (3, 11):
        print_success("Python version >= 3.11")
    else:
        print_error("Python version < 3.11 (required)")
        errors.append("Python version too old")

    in_venv = hasattr(sys, 'base_prefix') and sys.base_prefix != sys.prefix
    if in_venv:
        print_success("Running in virtual environment")
    else:
        print_warning("Not running in virtual environment (recommended)")
        warnings.append("Not in venv")

    # 2. Import core dependencies
    print_section("2. Core Dependencies")

    dependencies = [
        ("quart", "Quart web framework"),
        ("hypercorn", "Hypercorn ASGI server"),
        ("httpx", "HTTP client"),
        ("numpy", "Vector math"),
        ("pdfplumber", "PDF text extraction"),
        ("pydantic", "Data validation"),
        ("structlog", "Structured logging"),
        ("pytest", "Testing framework"),
    ]

    for module_name, description in dependencies:
        try:
            __import__(module_name)
            print_success(f"{description:30} ({module_name})")
        except ImportError as e:
            print_error(f"{description:30} ({module_name}) - {e}")
            errors.append(f"Missing: {module_name}")

    # 3. Configuration
    print_section("3. Configuration")

    try:
        from rag_studio import config

        print_success("Config loaded successfully")
        print_info(f"  API base URL: {config.OPENAI_BASE_URL}")
        print_info(f"  Chat model: {config.CHAT_MODEL}")
        print_info(f"  Embedding model: {config.EMBEDDING_MODEL}")
        print_info(
            f"  Chunk size: {config.DEFAULT_CHUNK_SIZE} chars "
            f"(allowed {config.MIN_CHUNK_SIZE}-{config.MAX_CHUNK_SIZE})"
        )
        print_info(f"  Server: {config.HOST}:{config.PORT}{config.API_PREFIX}")

    except Exception as e:
        print_error(f"Failed to load config: {e}")
        errors.append("Config loading failed")
        return errors, warnings

    # 4. OpenAI key
    print_section("4. OpenAI API Key")

    if not config.OPENAI_API_KEY:
        print_warning("OPENAI_API_KEY not set; every request must send its own key")
        print_info(f"  Header: {config.API_KEY_HEADER}")
        warnings.append("No default API key")
    else:
        from rag_studio.credentials import validate_api_key
        from rag_studio.llm_client import create_openai_client

        result = await validate_api_key(create_openai_client(config.OPENAI_API_KEY))
        if result.valid:
            print_success(result.message)
        else:
            print_error(result.message)
            errors.append("Default API key rejected")

    # 5. Summary
    print_section("Summary")

    if not errors:
        print_success("All checks passed! ✨")
        print_info("  Start the server: hypercorn rag_studio.main:app --bind 0.0.0.0:3001")
    else:
        print_error(f"Found {len(errors)} error(s):")
        for i, error in enumerate(errors, 1):
            print(f"  {i}. {error}")

    if warnings:
        print_warning(f"\nFound {len(warnings)} warning(s):")
        for i, warning in enumerate(warnings, 1):
            print(f"  {i}. {warning}")

    print()
    return errors, warnings

if __name__ == "__main__":
    errors, warnings = asyncio.run(main())
    sys.exit(1 if errors else 0)
