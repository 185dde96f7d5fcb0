"""
decarb_planner.reporting: plan formatting and flat-file export.

Consumes in-memory engine results; never touches catalogs or the ledger.

Modules:
  formatters: ASCII terminal tables for Typer CLI commands.
  export:     CSV/JSON writers for plans and allocation lines.
"""
