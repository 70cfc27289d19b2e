"""Campaign scheduling and delivery engine.

Stores push-notification campaigns, decides which are due, and delivers
each due campaign at most once per delivery window under concurrent
triggers. Entry point: `campaign_engine.control_layer.CampaignManager`,
usually built with `campaign_engine.factory.create_campaign_manager`.
"""

__version__ = "0.1.0"
