"""
Kozani

GitHub-authenticated chat glue that streams answers from the Kozani backend
into an editor-style host (chat participant, language-model provider, sidebar).
"""

__version__ = "0.1.0"
