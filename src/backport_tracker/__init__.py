"""Backport tracker.

Mirrors Jira issues matched by a tracking query, together with the chain
of issues cloned from each of them, into a MongoDB collection, and serves
that collection over a small JSON API.
"""

__version__ = "0.1.0"
