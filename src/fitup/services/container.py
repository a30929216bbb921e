"""Wiring of repositories and services over one database."""

from dataclasses import dataclass

from ..data.catalog import TemplateCatalog
from ..db.database import Database
from ..db.repositories import Repositories
from ..exporters.pdf import PlanRenderer
from ..realtime.hub import Hub
from .analytics import AnalyticsService
from .coaching import CoachingService, InvitationNotifier
from .goals import GoalService
from .messaging import ConversationService, MessageService, RealtimeService
from .plan_generator import PlanGenerator
from .profiles import ProfileService
from .sessions import SessionTracker


@dataclass
class Services:
    repos: Repositories
    hub: Hub
    plans: PlanGenerator
    analytics: AnalyticsService
    sessions: SessionTracker
    goals: GoalService
    profiles: ProfileService
    coaching: CoachingService
    conversations: ConversationService
    messages: MessageService
    realtime: RealtimeService


def build_services(
    database: Database,
    hub: Hub | None = None,
    catalog: TemplateCatalog | None = None,
    renderer: PlanRenderer | None = None,
    notifier: InvitationNotifier | None = None,
    frontend_url: str = "http://localhost:3000",
    pdf_timeout: float = 30.0,
) -> Services:
    repos = Repositories(database)
    hub = hub or Hub()
    plans = PlanGenerator(repos, catalog=catalog, renderer=renderer, pdf_timeout=pdf_timeout)
    analytics = AnalyticsService(repos)
    realtime = RealtimeService(hub, repos)
    return Services(
        repos=repos,
        hub=hub,
        plans=plans,
        analytics=analytics,
        sessions=SessionTracker(repos, plans, analytics),
        goals=GoalService(repos),
        profiles=ProfileService(repos),
        coaching=CoachingService(repos, notifier=notifier, frontend_url=frontend_url),
        conversations=ConversationService(repos),
        messages=MessageService(repos, realtime),
        realtime=realtime,
    )
