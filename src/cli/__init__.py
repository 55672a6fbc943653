"""CLI tools for screentext.

- ``python -m src.cli.extract`` extracts text from a chat screenshot and
  prints it (or the full result as JSON with ``--json``).
"""
