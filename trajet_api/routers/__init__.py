"""
FastAPI routers grouped by domain (auth, trajets).

Each module exposes an APIRouter included by the application factory; the
routers only translate HTTP payloads and delegate to the services.
"""
