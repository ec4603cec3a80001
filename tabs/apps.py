from django.apps import AppConfig
from django.conf import settings


class TabsConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'tabs'

    notifier = None
    service = None
    gateway = None

    def ready(self):
        from .notifier import Notifier, RedisBroadcaster
        from .realtime import RealtimeGateway
        from .services import TabService

        broadcaster = RedisBroadcaster() if settings.TABS_REALTIME_BROADCAST else None
        self.notifier = Notifier(broadcaster=broadcaster)
        self.service = TabService(notifier=self.notifier)
        self.gateway = RealtimeGateway(self.service)
