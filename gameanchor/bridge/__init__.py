"""Bridge layer between gameanchor and the two external systems it writes to.

Modules
-------
pinning
    HTTP client for the IPFS pinning service (multipart upload, bearer token,
    retry with jittered backoff on transport failures only).
ledger
    Solana program-derived-address derivation and the JSON-RPC client that
    submits and confirms the ``store_game_metadata`` transaction.
signer
    Ed25519 wallet signing via PyNaCl, with base58 addresses.

Nothing is re-exported here so that importing one bridge never drags in the
others (the models import ``signer`` directly).
"""
