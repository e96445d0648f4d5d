# flashloan_attack_core/__init__.py

# Core library for simulating a flash loan price-manipulation attack against
# an asset-backed reserve token. Scenarios import directly from the modules:
#   from flashloan_attack_core.environment import SimulationEnvironment
#   from flashloan_attack_core.orchestrator import AttackOrchestrator
#   from flashloan_attack_core import config as core_config
