"""
Authentication and authorization for the RentCalc dashboard.

- pkce: verifier/challenge generation and verifier storage
- session_client: the session owner on top of the identity provider
- resolver: AuthState resolution and page gating
- route_guard: middleware for protected paths
- callback / client_flow: completing the OAuth redirect
"""
