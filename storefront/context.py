"""
Contexto por requisição: dados que toda view pode usar.

O contexto é montado por um pipeline explícito de estágios. Cada estágio
recebe (request, contexto) e devolve (novo contexto, decisão). A decisão é
seguir adiante ou encerrar já com uma resposta; o primeiro encerramento
interrompe o pipeline e a rota nunca é chamada.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from flask import Flask, g, redirect, request, session
from werkzeug.wrappers import Response

from .auth import SessionIdentity
from .errors import CatalogUnavailable
from .models import Category, User, get_catalog


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Breadcrumb:
    name: str
    url: Optional[str]


def derive_breadcrumbs(path: str) -> List[Breadcrumb]:
    """Converte o path da requisição em breadcrumbs.

    O primeiro item é sempre Home (/). Cada segmento vira um item com a
    primeira letra maiúscula (o resto fica como está) e a url acumulada;
    o último segmento é a página atual e não tem url.

    "/" gera um único segmento vazio: [Home, ("", None)].
    """
    crumbs = [Breadcrumb("Home", "/")]
    segments = path[1:].split("/")
    acc = ""
    for i, segment in enumerate(segments):
        last = i == len(segments) - 1
        if not last:
            acc = acc + "/" + segment
        crumbs.append(Breadcrumb(name=segment[:1].upper() + segment[1:], url=None if last else acc))
    return crumbs


@dataclass(frozen=True)
class RequestContext:
    login: bool = False
    session: object = None
    current_user: Optional[User] = None
    categories: Tuple[Category, ...] = ()
    breadcrumbs: Tuple[Breadcrumb, ...] = ()

    def as_template_vars(self) -> Dict[str, object]:
        return {
            "login": self.login,
            "session": self.session,
            "current_user": self.current_user,
            # Nome antigo das views; remover quebra templates existentes
            "currentUser": self.current_user,
            "categories": self.categories,
            "breadcrumbs": self.breadcrumbs,
        }


@dataclass(frozen=True)
class Decision:
    response: Optional[Response] = None

    @property
    def proceed(self) -> bool:
        return self.response is None

    @classmethod
    def short_circuit(cls, response: Response) -> "Decision":
        return cls(response=response)


CONTINUE = Decision()

Stage = Callable[[object, RequestContext], Tuple[RequestContext, Decision]]


def _back_home(reason: str, exc: Exception) -> Decision:
    # Falha do catálogo não vira página de erro: volta para a home
    logger.error("Context enrichment failed (%s) on %s %s, redirecting to /: %s",
                 reason, request.method, request.path, exc)
    return Decision.short_circuit(redirect("/"))


def resolve_identity(req, ctx: RequestContext) -> Tuple[RequestContext, Decision]:
    identity = SessionIdentity(session, get_catalog().users)
    try:
        login = identity.is_authenticated()
    except CatalogUnavailable as exc:
        return ctx, _back_home("user lookup", exc)
    return replace(ctx, login=login, session=identity.current_session,
                   current_user=identity.current_user), CONTINUE


def load_categories(req, ctx: RequestContext) -> Tuple[RequestContext, Decision]:
    try:
        categories = get_catalog().categories.find_all()
    except CatalogUnavailable as exc:
        return ctx, _back_home("category lookup", exc)
    return replace(ctx, categories=tuple(categories)), CONTINUE


def attach_breadcrumbs(req, ctx: RequestContext) -> Tuple[RequestContext, Decision]:
    return replace(ctx, breadcrumbs=tuple(derive_breadcrumbs(req.path))), CONTINUE


@dataclass
class ContextPipeline:
    stages: Sequence[Stage] = field(default_factory=lambda: (resolve_identity, load_categories, attach_breadcrumbs))

    def run(self, req) -> Tuple[RequestContext, Decision]:
        ctx = RequestContext()
        for stage in self.stages:
            ctx, decision = stage(req, ctx)
            if not decision.proceed:
                return ctx, decision
        return ctx, CONTINUE


def current_context() -> RequestContext:
    return g.get("request_context") or RequestContext()


def init_app(app: Flask, pipeline: Optional[ContextPipeline] = None) -> None:
    pipeline = pipeline or ContextPipeline()

    @app.before_request
    def enrich_request_context():
        # Arquivos estáticos são servidos antes de sessão e catálogo
        if request.endpoint == "static":
            return None
        ctx, decision = pipeline.run(request)
        g.request_context = ctx
        return decision.response

    # Injeta o contexto em todos os templates
    @app.context_processor
    def inject_request_context():
        return current_context().as_template_vars()
