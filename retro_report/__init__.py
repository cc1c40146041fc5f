"""Audio retro report pipeline.

Aggregates publisher spend exports by month, publisher and region, cleans
campaign labels into show names, and renders a stable delimited-text report
for publishing.
"""
