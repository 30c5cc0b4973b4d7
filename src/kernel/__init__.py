"""Framework-light building blocks: typed errors and outbound HTTP helpers.

Nothing under `src.kernel` imports routes or services.
"""
