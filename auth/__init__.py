"""auth/ -- Credential, token, and login-throttling package for TaskGate.

Layer rule: auth/ imports only stdlib, third-party libraries, and core/.
It does NOT import from api/, tasks/, or cache/.
api/ imports from auth/, not the other way around.
"""
