"""
Connection pipeline.

Pure calculators (voice overlap, text interaction, graph folding, ranking,
timelines) plus the repositories that feed them raw rows.
"""
