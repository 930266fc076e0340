"""
Standard type definitions for database models.

Provides consistent types for monetary, percentage and document fields
across all models.
"""

from sqlalchemy import DECIMAL, JSON
from sqlalchemy.dialects.postgresql import JSONB

# Standard money type for order totals, commissions, payouts
# Precision: 18 digits total, 2 after decimal point
# Suitable for: JPY amounts (rounded to whole yen) and IDR conversions
MoneyType = DECIMAL(18, 2)

# Commission rate percentage
# Precision: 5 digits total, 2 after decimal point
# Range: 0.00 to 100.00
PercentType = DECIMAL(5, 2)

# Document type for small nested records (bank info snapshots, method lists)
# JSONB on PostgreSQL, plain JSON elsewhere (tests run on SQLite)
JsonType = JSONB().with_variant(JSON(), "sqlite")
