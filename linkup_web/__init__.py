"""
HTTP layer for Linkup.

Routers are mounted by linkup_web.app.create_app():
- auth_routes.router      /api/v1/auth
- user_routes.router      /api/v1/users
- post_routes.router      /api/v1/posts
- comment_routes.router   /api/v1/comments
"""
