"""
Payroll Kernel

Shared foundation for the payroll computation engine:
- Structured JSON logging
- Typed exception hierarchy with machine-readable codes
- Decimal money helpers and the PayrollLine value object
"""

__version__ = "0.1.0"
