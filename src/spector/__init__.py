"""Validation of in-toto attestations.

The :mod:`spector.intoto` package decodes in-toto v1 statements and their
predicates, :mod:`spector.validate` checks documents against JSON schemas
and :mod:`spector.cli` exposes both on the command line.
"""
