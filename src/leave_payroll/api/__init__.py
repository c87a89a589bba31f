"""HTTP API for the leave and payroll engine."""
