"""Adapter package for external I/O implementations.

Purpose:
    Collect concrete implementations of the domain ports (web3 contract
    calls, the GraphQL indexer over HTTP, a TTL read cache and an in-memory
    chain double) used by use cases.

Dependencies:
    Individual submodules depend on ``web3``/``eth_utils``, ``requests`` and
    the domain protocol definitions.

Call context:
    Imported by ``goalvault.app.composition`` for runtime wiring and by tests
    for doubles and error-translation checks.
"""
