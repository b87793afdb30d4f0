from dependency_injector import containers, providers

from whatsrelay.core.dispatcher import CommandDispatcher
from whatsrelay.core.gateway import SendMessageGateway
from whatsrelay.core.hub import BroadcastHub
from whatsrelay.core.normalizer import EventNormalizer
from whatsrelay.core.relay import SessionRelay
from whatsrelay.core.settings import Settings
from whatsrelay.core.state import SessionStateMachine
from whatsrelay.transports import load_transport


class Container(containers.DeclarativeContainer):
    """Dependency Injection Container for the relay.

    Every core component is a singleton: one session, one state machine, one
    hub per process.  Override ``config`` with an initialised Settings
    instance (and ``transport`` in tests) before resolving ``relay``.
    """

    config = providers.Singleton(Settings)

    transport = providers.Singleton(
        lambda cfg: load_transport(
            cfg.transport,
            session_name=cfg.wapi_session_name,
        ),
        config,
    )

    state_machine = providers.Singleton(SessionStateMachine)
    normalizer = providers.Singleton(EventNormalizer)
    hub = providers.Singleton(BroadcastHub, outbox_size=config.provided.queues.observer)

    gateway = providers.Singleton(
        SendMessageGateway,
        transport=transport,
        state_machine=state_machine,
        hub=hub,
        normalizer=normalizer,
        chat_suffix=config.provided.chat_suffix,
        contacts_limit=config.provided.contacts_limit,
    )

    dispatcher = providers.Singleton(
        CommandDispatcher,
        gateway=gateway,
        hub=hub,
        transport=transport,
        replies=config.provided.replies,
        prefix=config.provided.bot_prefix,
    )

    relay = providers.Singleton(
        SessionRelay,
        transport=transport,
        state_machine=state_machine,
        normalizer=normalizer,
        hub=hub,
        gateway=gateway,
        dispatcher=dispatcher,
        queue_size=config.provided.queues.events,
    )
