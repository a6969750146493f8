from .auth_api import router as auth_api_router
from .categories_api import router as categories_api_router
from .categories_ui import router as categories_ui_router
from .history_api import router as history_api_router
from .inventory_api import router as inventory_api_router
from .inventory_ui import router as inventory_ui_router
from .templates_api import router as templates_api_router
from .users_api import router as users_api_router

ALL_ROUTERS = (
    auth_api_router,
    users_api_router,
    categories_api_router,
    inventory_api_router,
    history_api_router,
    templates_api_router,
    inventory_ui_router,
    categories_ui_router,
)
