"""View models for the console pages.

Modules in this package are imported lazily (see `leaddesk.routes`), so
nothing here is imported eagerly by the package itself.
"""
