"""Spec workflow implementation logs - task parsing, log store and log search."""

# No imports at package level to keep module imports independent;
# import from the submodules directly where needed.

__version__ = "0.1.0"
