import importlib

__all__ = [
    "analysis",
    "color",
    "compression",
    "conflicts",
    "explain",
    "messaging",
    "params",
    "plot",
    "problems",
    "problems_graph",
    "records",
    "utils",
]


def __getattr__(name: str):
    if name in __all__:
        return importlib.import_module("." + name, __name__)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
