"""
PDR Kernel - Performance & Development Review lifecycle core

An annual review workflow with:
- A pure, table-driven lifecycle state machine
- Role and ownership based capability resolution
- Notification and audit instructions emitted as data
- Optimistic concurrency support for callers
"""

__version__ = "0.1.0"
