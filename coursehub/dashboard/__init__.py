"""Per-role dashboards computed from the resource tables."""
