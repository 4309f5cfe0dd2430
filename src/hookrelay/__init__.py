"""Registry push webhook relay for TaaS test triggers.

This package receives "image tag pushed" notifications from a container
registry and turns matching ones into a delayed TaaS release hook:
- Inbound payload validation and repository/tag filtering
- Release resolution against the TaaS diagnostic and Akkeris release APIs
- Trigger scheduling aligned to the deployment sync cycle
- Fire-and-forget dispatch of the TaaS release hook
"""
