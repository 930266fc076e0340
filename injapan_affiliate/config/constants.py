"""
Application constants.

Centralized constants for the referral and affiliate pipeline.
"""

# ========================================================================
# CLIENT STORAGE
# ========================================================================

# Query parameter carrying the referral code on landing URLs
REFERRAL_QUERY_PARAM = "ref"

# Keys in the visitor's persistent key/value storage
STORAGE_KEY_REFERRAL_CODE = "referralCode"
STORAGE_KEY_REFERRAL_TIMESTAMP = "referralTimestamp"
STORAGE_KEY_VISITOR_ID = "visitorId"

VISITOR_ID_PREFIX = "visitor"

# ========================================================================
# REFERRAL CODES
# ========================================================================

REFERRAL_CODE_NAME_PREFIX_LENGTH = 3
REFERRAL_CODE_RANDOM_LENGTH = 3
REFERRAL_CODE_USER_SUFFIX_LENGTH = 4
REFERRAL_CODE_MAX_LENGTH = 20
REFERRAL_CODE_GENERATION_ATTEMPTS = 5

# ========================================================================
# PROGRAM SETTINGS
# ========================================================================

# Primary key of the affiliate settings singleton row
AFFILIATE_SETTINGS_ID = 1

# Generic message returned for consistency violations (detail is logged)
OPERATION_FAILED_MESSAGE = "Operation failed, please retry"

ADMIN_REQUIRED_MESSAGE = "Admin privileges required"
