"""inventory/ -- Asset records (hosted file metadata) for Warden.

Layer rule: inventory/ imports only stdlib, third-party libraries and core/.
"""
