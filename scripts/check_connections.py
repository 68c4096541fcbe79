#!/usr/bin/env python
"""Check connections to every store adapter and open one transaction on each."""

from graph_acid.adapters import AdapterRegistry
from graph_acid.operations import Operation

# Connection configs for each store
CONFIGS = {
    # In-process
    "memory": {},

    # Docker stores
    "neo4j": {"uri": "bolt://localhost:7687", "user": "neo4j", "password": "benchmark"},
    "memgraph": {"uri": "bolt://localhost:7688"},
}


def check_connection(name: str) -> tuple[bool, str]:
    """Connect, run one read-only transaction and disconnect. Returns (success, message)."""
    try:
        store = AdapterRegistry.create(name)
        store.connect(**CONFIGS.get(name, {}))
        tx = store.begin()
        try:
            store.execute(tx, Operation.ACCOUNT_EXISTS, {"accountId": -1})
        finally:
            store.abort(tx)
        version = store.version
        store.disconnect()
        return True, f"v{version}"
    except ImportError as e:
        return False, f"Missing package: {e}"
    except Exception as e:
        return False, str(e)[:50]


def main():
    print("=" * 60)
    print("Checking Store Connections")
    print("=" * 60)
    print()

    for name in AdapterRegistry.list():
        ok, msg = check_connection(name)
        status = "[OK]" if ok else "[FAIL]"
        print(f"  {status:6} {name:12} {msg}")

    print()
    print("=" * 60)


if __name__ == "__main__":
    main()
