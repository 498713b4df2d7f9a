"""Application modules.

This package contains the feature modules of the Check Host backend:
- agent: Worker agent registry and health probing
- check: Multi-agent check dispatch and result normalization
"""
