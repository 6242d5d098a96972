"""
SleepWake Test Suite
"""
