"""
Protocol constants shared by all endpoints.

The router fee must match the value hard-coded in the on-chain validator.
"""

# Amount of lovelace used as a convenient alternative to computing the
# minimum required lovelace of an output.
LOVELACE_MARGIN = 2_000_000

# Router fee (lovelace) charged when routing a UTxO with a simple datum.
ROUTER_FEE = 1_000_000


# =============================================================================
# Error messages
# =============================================================================

INSUFFICIENT_ADA_ERROR_MSG = "Not enough Lovelaces are getting locked"
UNAUTHORIZED_OWNER_ERROR_MSG = "Signer is not authorized to claim the UTxO"
MISSING_DATUM_ERROR_MSG = "missing datum"
NO_OWNER_ERROR_MSG = (
    "This advanced UTxO has no owner specified, and therefore cannot be reclaimed."
)
NO_ADVANCED_RECLAIM_ERROR_MSG = (
    "Failed to reclaim an advanced datum as no advanced reclaim logic was provided"
)
BAD_REQUESTS_LABEL = "Bad request(s) encountered"
BAD_RECLAIMS_LABEL = "Bad reclaim(s) encountered"
BAD_ROUTES_LABEL = "Bad route(s) encountered"
BAD_ADDITIONAL_ACTIONS_LABEL = "Additional action on one or more of the configs failed"
