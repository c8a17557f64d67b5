"""Health-finance calculation engine.

Pure, synchronous calculations over immutable value snapshots: amount
normalization, insurance coverage allocation, financial health
classification, medical risk aggregation and loan amortization.
"""
