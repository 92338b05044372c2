"""Service layer: endpoint pools, token catalogs, aggregation, pricing and portfolio state.

Submodules are imported directly (``from chainview.services.aggregator import ...``);
providers depend on ``endpoints`` and ``token_lists``, so this package keeps no
eager imports.
"""
