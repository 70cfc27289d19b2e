"""Tools used by the campaign engine: persistence, delivery transports, Redis.

Keep this file light so `import campaign_engine.tools.persistence.service`
does not pull in the Redis or Supabase clients.
"""
