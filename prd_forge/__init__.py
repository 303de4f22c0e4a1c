"""
PRD Forge.

Generates user stories and PRDs with a language model, tracks usage
analytics and exports stories to Notion.
"""

__version__ = "0.1.0"
