"""
Business services: the pure pricing and FBR engines, and the async
orchestration around the backend API.
"""
