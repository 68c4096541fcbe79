r"""
Harness configuration and run plans.

Run plans (transaction counts follow the LDBC ACID reference drivers):
    - standard: counts and 250 ms race windows of the reference Bolt driver
    - quick: small counts and 10 ms windows, for smoke runs
    - stress: larger reader and writer counts, as used against TuGraph

Reference: https://github.com/ldbc/ldbc_acid
Paper: "Towards Testing ACID Compliance in the LDBC Social Network Benchmark" (TPCTC 2020)

    from graph_acid.config import PLANS, get_plan

    plan = get_plan("quick")
    print(f"Workers: {plan.workers}, G0 writers: {plan.g0_writers}")
"""

import os
from pathlib import Path

from dotenv import load_dotenv

from graph_acid.types import RunPlan

__all__ = [
    "PLANS",
    "DEFAULT_PLAN",
    "get_plan",
    "get_env",
    "get_env_int",
    "ENV_PREFIX",
]

# Look for .env in current dir or the project root
_env_file = Path(".env")
if not _env_file.exists():
    _env_file = Path(__file__).parent.parent / ".env"
if _env_file.exists():
    load_dotenv(_env_file)

ENV_PREFIX = "GRAPH_ACID_"

PLANS: dict[str, RunPlan] = {
    "standard": RunPlan(name="standard"),
    "quick": RunPlan(
        name="quick",
        drain_timeout_seconds=300,
        sleep_ms=10,
        atomicity_transactions=10,
        g0_writers=20,
        g1a_writers=2,
        g1a_readers=2,
        g1b_writers=4,
        g1b_readers=4,
        g1c_transactions=20,
        imp_transactions=4,
        pmp_transactions=4,
        otv_rounds=10,
        otv_readers=5,
        fr_transactions=10,
        lu_transactions=20,
        ws_writers=10,
    ),
    # Reader and writer counts of the TuGraph driver
    "stress": RunPlan(
        name="stress",
        g1b_writers=50,
        g1b_readers=100,
        imp_transactions=50,
        pmp_transactions=50,
        otv_readers=50,
        fr_transactions=100,
        lu_transactions=500,
    ),
}

DEFAULT_PLAN = "standard"


def get_plan(name: str) -> RunPlan:
    """Get run plan by name.

    Args:
        name: Plan name (standard, quick, stress).

    Returns:
        RunPlan for the requested name.

    Raises:
        ValueError: If plan name is not recognized.
    """
    if name not in PLANS:
        valid = ", ".join(PLANS.keys())
        msg = f"Unknown plan '{name}'. Valid plans: {valid}"
        raise ValueError(msg)
    return PLANS[name]


def get_env(key: str, *, default: str | None = None) -> str | None:
    """Get environment variable with GRAPH_ACID_ prefix.

    Args:
        key: Variable name without prefix (e.g., "NEO4J_URI").
        default: Default value if not set.

    Returns:
        Environment variable value or default.
    """
    return os.environ.get(f"{ENV_PREFIX}{key}", default)


def get_env_int(key: str, *, default: int | None = None) -> int | None:
    """Get an integer environment variable with GRAPH_ACID_ prefix.

    Raises:
        ValueError: If the variable is set but not an integer.
    """
    value = get_env(key)
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError:
        msg = f"{ENV_PREFIX}{key} must be an integer, got '{value}'"
        raise ValueError(msg) from None
