"""Pre-defined API errors."""

from __future__ import annotations

from bridge_relayer.errors.relayer_errors import RelayerError

# -- Validation ------------------------------------------------------------

ErrMissingTransactionFields = RelayerError(
    "Missing required transaction fields", status_code=400, code="missing-fields"
)
ErrInvalidMessageHash = RelayerError(
    "Invalid message hash format", status_code=400, code="invalid-message-hash"
)
ErrInvalidTxHash = RelayerError(
    "Invalid transaction hash format", status_code=400, code="invalid-tx-hash"
)

# -- Not Found -------------------------------------------------------------

ErrTransactionNotFound = RelayerError(
    "Transaction not found", status_code=404, code="transaction-not-found"
)
ErrAttestationNotAvailable = RelayerError(
    "Attestation not available yet", status_code=404, code="attestation-not-available"
)

# -- Service ---------------------------------------------------------------

ErrRelayerNotInitialized = RelayerError(
    "relayer not initialized", status_code=503, code="relayer-not-initialized"
)
