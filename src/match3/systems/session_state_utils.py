from esper import World

from match3.components.session_state import SessionState


def get_or_create_session_state(world: World) -> SessionState:
    """Return the shared SessionState component, creating it if absent."""
    existing = list(world.get_component(SessionState))
    if existing:
        return existing[0][1]
    world.create_entity(SessionState())
    return list(world.get_component(SessionState))[0][1]
