"""
Tailor Kernel

Order records for a garment-tailoring shop, tracked through the
production pipeline with:
- Garment-based routing to department queues
- Exclusive claims per order
- Optimistic whole-collection writes
- Structured audit logging
"""

__version__ = "0.1.0"
