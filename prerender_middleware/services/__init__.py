"""
Prerender Middleware - Services Layer
=====================================

Service Inventory:
    - bot_matcher:        is_bot() crawler / _escaped_fragment_ predicate
    - eligibility:        should_intercept() veto rules
    - target_url:         original URL reconstruction and service URL composition
    - cache_bridge:       CacheHooks interface and fail-soft CacheBridge
    - render_client:      RenderClient, outbound fetch with gzip decoding
    - prerender_service:  PrerenderService, the fail-open orchestrator
"""
