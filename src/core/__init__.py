"""Core domain package for owlsync.

Core contains the message store, markup encoding and the synchronization
writers without any PocketBase or UI-specific code, keeping the reconciliation
logic portable.
"""
