"""
Pytest fixtures for the DocStyles test suite.

- forge_archives: zip builders and an ``httpx.MockTransport`` forge stand-in
"""
