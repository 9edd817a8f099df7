"""
Table models: card encoding, participants, the coordinator and the
in-process game driver.
"""
