"""Encoding, signing and web3 helpers."""
