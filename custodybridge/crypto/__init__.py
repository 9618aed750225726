"""Signature recovery and signing for transfer hashes."""
