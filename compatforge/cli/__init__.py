"""compatforge CLI — Typer-based command-line interface.

Provides the ``compatforge`` command with subcommands for running the
matrix, listing variants, inspecting stored runs and writing a sample
matrix file.

All output uses Rich for formatted terminal display.
"""
