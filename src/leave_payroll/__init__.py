"""Leave balance and monthly payroll settlement engine."""

__version__ = "0.1.0"
