"""
Circuit Parameters
==================

Bit widths and fixed-point scales shared by the circuits, the prover and the
pool. Changing any of these changes circuit shape and invalidates keys.
"""

# Collateral, debt and price are 64-bit unsigned integers
VALUE_BITS = 64
MAX_VALUE = (1 << VALUE_BITS) - 1

# LTV and liquidation thresholds are whole percentages
PERCENT_BITS = 8
PERCENT = 100

# Prices carry 8 decimals
PRICE_SCALE = 10**8

# Comparison widths: operands must lie below 2^(bits - 1)
COLLATERAL_COMPARE_BITS = VALUE_BITS + 1
LTV_COMPARE_BITS = VALUE_BITS + PERCENT_BITS + 1
LIQUIDATION_COMPARE_BITS = 2 * VALUE_BITS + PERCENT_BITS + 1
