"""Upstream services: Supabase stores, weather, almanac and discover feeds."""
