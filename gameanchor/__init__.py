"""gameanchor: pin a game build to IPFS and anchor its manifest on Solana.

A folder (typically a Godot HTML5 export) is ingested, packaged as a
multipart upload, pinned through a pinning service, summarized in a
manifest, and recorded in the uploader's program-derived metadata account.
Pinning and anchoring fail independently: a run whose on-chain write
fails or is skipped still returns a usable CID and playable URL.
"""

__version__ = "0.1.0"

from gameanchor.core.orchestrator import Orchestrator
from gameanchor.cli.app import app as cli

__all__ = ["Orchestrator", "cli", "__version__"]
