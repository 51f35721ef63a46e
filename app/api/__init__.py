"""HTTP surface of the helpdesk API."""
