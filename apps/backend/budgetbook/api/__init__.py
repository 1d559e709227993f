"""HTTP handlers grouped by feature; routes are declared in ``budgetbook.routers``."""
