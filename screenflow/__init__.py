"""
Screenflow Navigation Engine.

Maintains, mutates, and validates the directed graph of screens that make up
one flow. This package provides:

1. Graph Reads:
   - Navigation graph building (entry screen, children, targets)
   - Structural validation (dangling edges, reachability, cycles, duplicates)
   - Shortest path lookup between two screens

2. Branching:
   - Branch CRUD and branch-point queries
   - Branch merging

3. Sequencing:
   - Ordered screen listing
   - Screen insertion, removal with reconnection, and reordering

4. Storage:
   - Per-flow transactional screen store (in-memory or SQL)

API:
   - GET/POST/PATCH/DELETE /flows/{id}/branches
   - POST /flows/{id}/branches/merge
   - GET/POST/DELETE /flows/{id}/navigation
   - GET/POST /flows/{id}/screens
   - DELETE /flows/{id}/screens/{screen_id}
   - POST /flows/{id}/screens/{screen_id}/reorder
"""

__version__ = "1.0.0"
