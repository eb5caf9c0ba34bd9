"""Sub-command groups for the ``recall`` maintenance command."""
