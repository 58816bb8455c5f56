"""
API 層：FastAPI routers 與 dependencies
"""
