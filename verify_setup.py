"""
Setup verification script for the Skills Matrix backend.
Checks all dependencies and services are properly configured.
"""
import asyncio
import os
import sys
from typing import List, Tuple

# Color codes for terminal output
GREEN = "\033[92m"
RED = "\033[91m"
YELLOW = "\033[93m"
BLUE = "\033[94m"
RESET = "\033[0m"


def print_status(message: str, status: bool):
    """Print colored status message."""
    symbol = f"{GREEN}✓{RESET}" if status else f"{RED}✗{RESET}"
    print(f"{symbol} {message}")


async def check_python_version() -> bool:
    """Check Python version is 3.11+."""
    version = sys.version_info
    if version.major == 3 and version.minor >= 11:
        print_status(f"Python version: {version.major}.{version.minor}.{version.micro}", True)
        return True
    print_status(f"Python version {version.major}.{version.minor} (requires 3.11+)", False)
    return False


async def check_dependencies() -> bool:
    """Check if required packages are installed."""
    required_packages = [
        "fastapi",
        "uvicorn",
        "sqlalchemy",
        "asyncpg",
        "httpx",
        "fitz",
        "docx",
        "pydantic_settings",
        "alembic",
    ]

    all_installed = True
    for package in required_packages:
        try:
            __import__(package)
            print_status(f"Package '{package}' installed", True)
        except ImportError:
            print_status(f"Package '{package}' missing", False)
            all_installed = False

    return all_installed


async def check_env_file() -> bool:
    """Check if .env file exists."""
    if os.path.exists(".env"):
        print_status(".env file exists", True)
        return True
    print_status(".env file missing (DATABASE_URL and LLM_API_KEY are read from it)", False)
    return False


async def check_documents_dir() -> bool:
    """Check the skill document directory and count readable files."""
    from skillsmatrix.config import settings
    from skillsmatrix.services.document_reader import DocumentReader

    if not os.path.isdir(settings.DOCUMENTS_DIR):
        print_status(f"Document directory missing: {settings.DOCUMENTS_DIR}", False)
        return False

    count = len(DocumentReader().list_documents(settings.DOCUMENTS_DIR))
    print_status(f"Document directory: {count} supported file(s)", count > 0)
    return count > 0


async def check_llm_config() -> bool:
    """Check the completion endpoint is configured. No request is sent."""
    from skillsmatrix.config import settings

    if not settings.LLM_API_KEY:
        print_status("LLM_API_KEY is not set", False)
        print(f"  {YELLOW}Extraction runs need a key for {settings.LLM_API_URL}{RESET}")
        return False
    print_status(f"LLM endpoint configured ({settings.LLM_MODEL})", True)
    return True


async def check_database() -> bool:
    """Check the configured database is reachable and the skills table exists."""
    from sqlalchemy import text

    from skillsmatrix.database import close_db, engine

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
            print_status("Database connection successful", True)
            try:
                count = (await conn.execute(text("SELECT COUNT(*) FROM skills"))).scalar()
            except Exception:
                print_status("skills table missing (run: alembic upgrade head)", False)
                return False
        print_status(f"skills table: {count} row(s)", True)
        return True

    except Exception as e:
        print_status(f"Database connection failed: {str(e)}", False)
        print(f"  {YELLOW}Check DATABASE_URL in .env{RESET}")
        return False
    finally:
        await close_db()


async def main():
    """Run all verification checks."""
    print(f"\n{BLUE}{'='*60}{RESET}")
    print(f"{BLUE}Skills Matrix Backend - Setup Verification{RESET}")
    print(f"{BLUE}{'='*60}{RESET}\n")

    checks: List[Tuple[str, callable]] = [
        ("Python Version", check_python_version),
        ("Dependencies", check_dependencies),
        ("Environment File", check_env_file),
        ("Document Directory", check_documents_dir),
        ("Database", check_database),
        ("LLM Endpoint", check_llm_config),
    ]

    results = []

    for check_name, check_func in checks:
        print(f"\n{BLUE}Checking {check_name}...{RESET}")
        try:
            result = await check_func()
            results.append(result)
        except Exception as e:
            print_status(f"Error during check: {str(e)}", False)
            results.append(False)

    # Summary
    print(f"\n{BLUE}{'='*60}{RESET}")
    passed = sum(results)
    total = len(results)

    if passed == total:
        print(f"{GREEN}✓ All checks passed! ({passed}/{total}){RESET}")
        print(f"\n{GREEN}You're ready to run the backend:{RESET}")
        print("  uvicorn skillsmatrix.main:app --reload")
        print("  or")
        print("  skillsmatrix progress")
    else:
        print(f"{RED}✗ Some checks failed ({passed}/{total} passed){RESET}")
        print(f"\n{YELLOW}Please fix the issues above before running the backend.{RESET}")
        sys.exit(1)

    print(f"{BLUE}{'='*60}{RESET}\n")


if __name__ == "__main__":
    asyncio.run(main())
