"""
Governance Ledger - point, token and vote consistency engine

Turns intents (earn, convert, exchange, spend, vote) into durable ledger
entries and projects each confirmed entry onto a materialized aggregate
that can always be rebuilt from the entries. Proposal identifiers are kept
in step with the numbering of an external on-chain governance contract.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
