"""
Явная таблица маршрутов.

Каждый модуль routes описывает упорядоченный список Route, а build_router
превращает его в APIRouter. Требуемые роли вешаются как зависимость
до вызова обработчика; roles=None означает публичный маршрут.
"""
from typing import Any, Callable, Iterable, NamedTuple, Optional

from fastapi import APIRouter, Depends

from quillpost.dependencies import require_roles


class Route(NamedTuple):
    method: str
    path: str
    roles: Optional[frozenset]
    endpoint: Callable[..., Any]
    options: Optional[dict] = None


def build_router(routes: Iterable[Route], **router_kwargs) -> APIRouter:
    router = APIRouter(**router_kwargs)

    # Порядок важен: /my-posts должен идти раньше /{post_id}
    for route in routes:
        dependencies = [] if route.roles is None else [Depends(require_roles(*route.roles))]
        router.add_api_route(
            route.path,
            route.endpoint,
            methods=[route.method],
            dependencies=dependencies,
            **(route.options or {}),
        )
    return router
