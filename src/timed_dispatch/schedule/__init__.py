"""
Scheduling subsystem.

Components:
- inputs.py: reads the three input files and validates them into a DispatchPlan
- scheduler.py: arms one timer per message and fans sends out to every recipient
"""
