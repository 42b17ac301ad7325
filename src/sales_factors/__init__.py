"""
Sales Factors - statistical core for sales vs. external factor analysis

Answers three questions over date-keyed business series:
- Are two series correlated, possibly with a lag, after FDR correction?
- Does one series Granger-cause the other?
- Which periods of a series are anomalous against their peers?

The package performs no I/O. Series come in as pandas Series and results go
out as immutable dataclasses (see models.py).
"""

# Note: import the analysis API from the subpackage
# Use: from sales_factors.analysis import scan_lags
# Use: from sales_factors import config

__version__ = "1.0.0"
