"""Terminal rendering of upload runs.

Modules
-------
renderer
    ``ResultRenderer`` turns a ``PipelineResult`` (or the transition log of
    a failed run) into Rich renderables: a color-coded transition table and
    a summary panel with the manifest and on-chain status.
"""
