"""Dashboards module - Landing page summaries for each role's workspace."""
