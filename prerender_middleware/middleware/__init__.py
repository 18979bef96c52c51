"""
Prerender Middleware - Middleware Package
=========================================

What:  The ASGI boundary between the host application and the prerender engine.

Placement:
    Register PrerenderMiddleware as the outermost middleware that should see
    crawler traffic. When it responds, inner middleware and routes are skipped;
    when it passes through, the request continues down the stack untouched.
"""
