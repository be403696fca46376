"""
Authentication handoff relay.

Design goals:
- Redeem a single-use handoff code from the no-code platform for an identity token.
- Exchange that token (or a provider-native authorization code) for a session.
- Carry the caller's post-login path safely across both redirect hops.
- Every failure ends in a redirect to the fallback entry point with a reason code.
"""
