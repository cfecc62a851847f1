"""
Funeral Kernel

Shared infrastructure for the funeral home ERP application layer:
- Structured JSON logging with request-scoped context
- Typed error taxonomy
- Injectable clock
- SQLAlchemy base classes and the generic SCD Type 2 repository
- Status state machines
"""

__version__ = "0.1.0"
