"""
Provider adapters. Each one turns a remote API into a ProviderSnapshot and
never raises past its fetch methods.
"""
