import os
from dotenv import load_dotenv

load_dotenv()  # Load environment variables from .env file

TRUTHY_VALUES = ("1", "true", "yes", "on")


def read_bool_env(name: str, default: bool) -> bool:
    """Read a boolean flag; unset keeps the default, anything non-truthy is False."""
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in TRUTHY_VALUES


def read_int_env(name: str, default: int) -> int:
    """Read a positive integer; empty, invalid or non-positive values keep the default."""
    raw = os.environ.get(name)
    if not raw:
        return default
    try:
        parsed = int(raw.strip(), 10)
    except ValueError:
        return default
    if parsed <= 0:
        return default
    return parsed


# --------------------------------------------------
# Application Database Configuration
# --------------------------------------------------
DATABASE_HOST = os.environ.get("DATABASE_HOST")
DATABASE_PORT = os.environ.get("DATABASE_PORT")
DATABASE_NAME = os.environ.get("DATABASE_NAME")
DATABASE_USER = os.environ.get("DATABASE_USER")
DATABASE_PASSWORD = os.environ.get("DATABASE_PASSWORD")

# Use the in-memory store instead of Postgres (local dry runs only)
USE_MEMORY_DATABASE = read_bool_env("USE_MEMORY_DATABASE", False)

# --------------------------------------------------
# Proposal Source / Transaction Builder
# --------------------------------------------------
# Web app that exposes /api/governance/realms/{address}
GOVERNANCE_API_URL = os.environ.get("GOVERNANCE_API_URL", "http://localhost:3000")
# Service that builds unsigned cast-vote transactions
TX_BUILDER_URL = os.environ.get("TX_BUILDER_URL", GOVERNANCE_API_URL)

# --------------------------------------------------
# Signing Service (Privy agentic wallets)
# --------------------------------------------------
PRIVY_API_URL = os.environ.get("PRIVY_API_URL", "https://api.privy.io/v1")
PRIVY_APP_ID = os.environ.get("PRIVY_APP_ID", "")
PRIVY_APP_SECRET = os.environ.get("PRIVY_APP_SECRET", "")

SOLANA_NETWORK = os.environ.get("SOLANA_NETWORK", "devnet")
SOLANA_CAIP2 = (
    "solana:EtWTRABZaYq6iMfeYKouRu166VU2xqa1"
    if SOLANA_NETWORK == "devnet"
    else "solana:5eykt4UsFv8P8NJdTREpY1vzqKqZKvdp"
)

# --------------------------------------------------
# Social Posting (Tapestry)
# --------------------------------------------------
TAPESTRY_API_URL = os.environ.get("TAPESTRY_URL", "https://api.usetapestry.dev/api/v1")
TAPESTRY_API_KEY = os.environ.get("TAPESTRY_API_KEY", "")

# --------------------------------------------------
# AI Analysis Provider (OpenAI-compatible endpoint)
# --------------------------------------------------
ZAI_API_KEY = os.environ.get("ZAI_API_KEY")
ZAI_BASE_URL = os.environ.get("ZAI_BASE_URL", "https://open.bigmodel.cn/api/coding/paas/v4/")
ANALYSIS_MODEL_NAME = os.environ.get("ANALYSIS_MODEL_NAME")

# --------------------------------------------------
# HTTP Control Surface
# --------------------------------------------------
WORKER_PORT = read_int_env("WORKER_PORT", 4000)
