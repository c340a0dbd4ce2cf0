from routers import admin, auth, categories, contact, digest, posts, users

ALL_ROUTERS = [
    auth.router,
    users.router,
    posts.router,
    categories.router,
    admin.router,
    contact.router,
    digest.router,
]
