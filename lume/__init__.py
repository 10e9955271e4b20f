"""
Lume Finance - Source Package

Core of a personal finance tracker: a data-access layer that keeps working
when the remote store turns us away, and a deterministic aggregation engine
for summaries, reserve targets and insights.

DESIGN PRINCIPLES:
1. Remote first, local when refused
2. Fallback is one-way for the lifetime of the process
3. Validate at the edge, never inside storage
4. Analytics never touch I/O
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Lume Team"
