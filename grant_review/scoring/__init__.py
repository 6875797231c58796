"""
scoring/: Review score aggregation

Modules:
    utils.py             - Zero-safe mean / variance / weighted mean
    score_aggregator.py  - Overall score, multi-assessor aggregate, criterion spread
"""
