from sitebooks.routers.jobs import router as jobs_router
from sitebooks.routers.reports import router as reports_router
from sitebooks.routers.tax import router as tax_router

__all__ = ["jobs_router", "reports_router", "tax_router"]
