"""Client screen state as an explicit reducer.

``transition(state, event)`` returns the next state plus the side effects the
client has to run for it, so a screen's behaviour is listed in one table
instead of being spread over handlers.
"""

import enum
from dataclasses import dataclass, field


class Screen(str, enum.Enum):
    signed_out = "signed_out"
    username_prompt = "username_prompt"
    home = "home"


class HomePanel(str, enum.Enum):
    joined_rooms = "joined_rooms"
    create_form = "create_form"


class Event(str, enum.Enum):
    signed_in = "signed_in"
    registered = "registered"
    username_set = "username_set"
    back_to_login = "back_to_login"
    signed_out = "signed_out"
    open_create_form = "open_create_form"
    close_create_form = "close_create_form"
    room_created = "room_created"


class Effect(str, enum.Enum):
    load_profile = "load_profile"
    load_joined_rooms = "load_joined_rooms"
    sign_out = "sign_out"
    clear_create_form = "clear_create_form"
    open_room = "open_room"


@dataclass(frozen=True)
class State:
    screen: Screen = Screen.signed_out
    panel: HomePanel = HomePanel.joined_rooms


@dataclass(frozen=True)
class Transition:
    state: State
    effects: tuple = field(default_factory=tuple)


_TABLE = {
    (Screen.signed_out, Event.signed_in): (Screen.home, (Effect.load_profile, Effect.load_joined_rooms)),
    (Screen.signed_out, Event.registered): (Screen.username_prompt, ()),
    (Screen.username_prompt, Event.username_set): (Screen.home, (Effect.load_profile, Effect.load_joined_rooms)),
    (Screen.username_prompt, Event.back_to_login): (Screen.signed_out, (Effect.sign_out,)),
}


def transition(state: State, event: Event, *, has_username: bool = True) -> Transition:
    """Apply ``event``; unknown combinations leave the state unchanged."""
    if event is Event.signed_out:
        return Transition(State(), (Effect.sign_out,))

    if event is Event.signed_in and state.screen is Screen.signed_out and not has_username:
        # identity exists but never picked a username
        return Transition(State(Screen.username_prompt))

    key = (state.screen, event)
    if key in _TABLE:
        screen, effects = _TABLE[key]
        return Transition(State(screen), effects)

    if state.screen is Screen.home:
        if event is Event.open_create_form and state.panel is HomePanel.joined_rooms:
            return Transition(State(Screen.home, HomePanel.create_form))
        if event is Event.close_create_form and state.panel is HomePanel.create_form:
            return Transition(State(Screen.home, HomePanel.joined_rooms), (Effect.clear_create_form,))
        if event is Event.room_created:
            return Transition(
                State(Screen.home, HomePanel.joined_rooms),
                (Effect.clear_create_form, Effect.open_room),
            )

    return Transition(state)


def screen_for(username: str | None) -> Screen:
    return transition(State(), Event.signed_in, has_username=bool(username)).state.screen
