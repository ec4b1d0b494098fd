"""claims_analytics: claims analytics and reporting core for the insurance portal.

This package normalizes raw claim records, joins them against employee, HR,
agent, and policy reference data, and derives filtered views, statistical
rollups, and CSV/PDF exports for the admin, HR, and agent dashboards.
"""
