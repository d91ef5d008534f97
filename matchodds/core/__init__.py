"""Core rules for the Match/Odds aggregate.

This package contains pure building blocks shared by the services:

- ``errors``      — the NotFound / Conflict / Validation error taxonomy
- ``pagination``  — page requests, sort parsing and page arithmetic
- ``consistency`` — specifier-uniqueness checks for odds within a match

Nothing in this package imports from ``matchodds.services`` or
``matchodds.models``.  The consistency checks that need persisted state
receive the odds repository as an argument.
"""
