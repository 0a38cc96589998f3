"""Soochna - public legal notice board.

Lawyers publish legal notices with an attached document; anyone can
browse, search and filter them and file objections, which are emailed
to the publishing lawyer.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
