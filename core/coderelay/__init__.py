"""coderelay - turns streamed model responses into reviewable file edits."""

__version__ = "0.1.0"
