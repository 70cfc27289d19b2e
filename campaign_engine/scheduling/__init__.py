"""Due evaluation, delivery guard and dispatch for campaigns.

Kept import-free so `campaign_engine.scheduling.due` can be imported by the
payload schemas without pulling in the store.
"""
