"""
Stock Modules.

Thin orchestration layers over the stock kernel and engines.  Each module
owns its transaction boundary (commit on success, rollback on failure) and
contains:
- Domain models (frozen DTOs)
- Workflows (state machines), where the documents have a lifecycle
- Configuration schemas
- ORM persistence for its documents

Modules:
- Fulfillment: purchase order receiving, sales order shipping
- Inventory: manual receipts and issues, transfers, count adjustments

Quantity conversion, costing and the ledger itself live in the kernel and
engines.
"""
