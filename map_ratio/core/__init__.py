"""map_ratio.core: Foundation layer.

Contains the colour helpers, classification policy, result types, report
builder and environment loading. Nothing here imports map_ratio.engine or
the CLI. Only stdlib, numpy, and PIL are allowed here.
"""
