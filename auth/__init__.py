"""auth/ -- Authentication package for the campus API.

Credential store, OTP issuer, mail sender, token service and the AuthService
state machine that ties them together.

Layer rule: auth/ imports only stdlib + third-party libraries + core/.
It does NOT import from api/ or resources/.
api/ imports from auth/, not the other way around.
"""
