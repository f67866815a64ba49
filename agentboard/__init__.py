"""Local task boards for agents: boards, cards, checklists and comments in SQLite."""

__version__ = "0.1.5"
__all__ = ["__version__"]