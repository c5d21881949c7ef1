#!/usr/bin/env python3
"""Quick live check of the Salesforce store against a sandbox org.

Needs SALESFORCE_INSTANCE_URL and SALESFORCE_ACCESS_TOKEN in the environment.

Run:
  python scripts/salesforce_live_check.py            # reconcile a scratch account, cycle 3 cases
  python scripts/salesforce_live_check.py "Acme Ltd" # reconcile the named account
"""

import sys

from crm_records.config import load_settings
from crm_records.reconcile import create_then_delete, reconcile_account
from crm_records.store import StoreOperationError, StoreRegistry


def main() -> None:
    name = sys.argv[1] if len(sys.argv) > 1 else "crm-records live check"
    settings = load_settings().model_copy(update={"store": "salesforce"})
    store = StoreRegistry.from_settings(settings)
    print(f"Using {store} at {settings.instance_url}")

    try:
        account = reconcile_account(store, name)
        print(f"Account {account.name!r}: id={account.id} description={account.description!r}")
        create_then_delete(store, "Case", 3, parent_id=account.id)
        print("Created and deleted 3 cases.")
    except StoreOperationError as e:
        print(f"\nStore rejected the call: {e}\n{e.payload}")
        raise SystemExit(1)
    print("\nLive check succeeded.")


if __name__ == "__main__":
    main()
