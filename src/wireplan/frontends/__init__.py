from wireplan.frontends.python_source import discover_sources, load_declarations, parse_module

__all__ = [
    "discover_sources",
    "load_declarations",
    "parse_module",
]
