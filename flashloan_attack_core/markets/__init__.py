# flashloan_attack_core/markets/__init__.py

# In-memory implementations of the flash loan, spot market and lending market
# capabilities defined in flashloan_attack_core.capabilities.
