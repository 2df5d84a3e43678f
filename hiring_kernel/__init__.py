"""
Hiring Kernel - internal hiring request workflow.

Tracks new-hire and replacement requests through:
- A fixed approval chain (BU Head -> HR Head -> Admin)
- A fulfillment pipeline (tentative -> final -> join confirmation)
- Derived dashboard metrics recomputed on every read
- A per-manager team budget debited once per confirmed join
"""

__version__ = "0.1.0"
