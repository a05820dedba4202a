"""
Sales Modules.

Thin orchestration layers over the sales kernel and engines.
Each module contains:
- Domain models (the nouns)
- Configuration schema (settings and defaults)
- The aggregate and its session service
- Persistence adapters behind async ports

Modules:
- Order entry: the sales-order cart, price tiers, historical price
  overlay, stock and margin gates, order numbers, submission

Actual calculation logic lives in the engines.
"""
