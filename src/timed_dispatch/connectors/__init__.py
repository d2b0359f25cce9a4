"""
Transports.

Components:
- registry.py: transport name -> session factory
- console_client.py: dry-run session (logs instead of sending)
- matrix_client.py: Matrix session via matrix-nio
"""
