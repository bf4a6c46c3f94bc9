"""State/cache layer.

Staleness policy and the cache stores holding the last known good
snapshot of each remote provider.
"""
