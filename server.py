#!/usr/bin/env python3
# Socket.IO table server for the mental poker protocol
# The server plays the coordinator; every client is a participant holding its own keys

from functools import wraps
import os
import threading
import time

from flask import Flask, jsonify, request
from flask_socketio import SocketIO, emit, join_room

from config import GameConfig
from poker_crypto.deck import EncryptedDeck
from poker_crypto.elgamal import Cipher
from poker_crypto.errors import (
    GameAborted,
    MalformedCiphertext,
    ProtocolError,
    UnresponsiveParticipant,
)
from poker_models.cards import card_to_dict
from poker_models.coordinator import STAGES, Coordinator

ROOM_NAME = "table"


class TableState:
    """
    In-memory state of the table: one coordinator and the open stage reveals.
    """

    def __init__(self, config, clock=time.monotonic):
        self.config = config
        self.coordinator = Coordinator(config, clock=clock)
        self.stage_sessions = {}  # stage -> list of RevelationSession
        # Handlers run on worker threads; one event mutates the table at a time
        self.lock = threading.RLock()

    @property
    def params(self):
        return self.config.params


def parse_int(value):
    """Parse a 0x-hex (or decimal) integer from a client payload."""
    try:
        return int(value, 0)
    except (TypeError, ValueError) as e:
        raise MalformedCiphertext(f"Not an integer: {value!r}") from e


def protocol_handler(table):
    """
    Turn protocol errors raised by a handler into client events.

    Fatal errors abort the game and are broadcast; rejected contributions are
    reported to the sender only.
    """
    def decorator(handler):
        @wraps(handler)
        def wrapper(*args, **kwargs):
            try:
                with table.lock:
                    return handler(*args, **kwargs)
            except ProtocolError as e:
                coordinator = table.coordinator
                if coordinator.aborted_reason:
                    print(f"[table] Game aborted: {coordinator.aborted_reason} ({e})")
                    aborted = {'reason': coordinator.aborted_reason}
                    emit('game_aborted', aborted, room=ROOM_NAME)
                    if request.sid not in coordinator.names:
                        # Not seated, so not in the table room
                        emit('game_aborted', aborted)
                else:
                    print(f"[table] Rejected {handler.__name__} from {request.sid}: {e}")
                    emit('error_msg', {'reason': e.reason, 'message': str(e)})
        return wrapper
    return decorator


def send_decrypt_request(session):
    """Hand a session's current partial result to its next contributor only."""
    emit('decrypt_request', {
        'sessionId': session.session_id,
        'cipher': session.current.to_dict(),
    }, room=session.next_contributor)


def register_handlers(socketio, table):
    """Attach the table's Socket.IO event handlers."""

    @socketio.on('connect')
    def handle_connect(auth=None):
        print('[table] Client connected:', request.sid)

    @socketio.on('join')
    @protocol_handler(table)
    def handle_join(data):
        """Seat a participant"""
        name = data.get('name') if isinstance(data, dict) else None
        name = name.strip() if isinstance(name, str) else ''
        if not name:
            emit('error_msg', {'reason': 'name_required', 'message': 'Name is required to join.'})
            return

        coordinator = table.coordinator
        if coordinator.aborted_reason:
            raise GameAborted(f"Game aborted: {coordinator.aborted_reason}")
        if len(coordinator.seats) >= table.config.player_count:
            emit('table_full', {'max': table.config.player_count})
            return

        socket_id = request.sid
        seat = coordinator.seat_participant(socket_id, name)
        join_room(ROOM_NAME)
        print(f"[table] {name} took seat {seat}")

        emit('joined', {
            'self': {'id': socket_id, 'name': name, 'seat': seat},
            'table': coordinator.to_dict(),
        })
        emit('participant_joined', {'id': socket_id, 'name': name, 'seat': seat},
             room=ROOM_NAME, skip_sid=socket_id)

    @socketio.on('submit_shared_key')
    @protocol_handler(table)
    def handle_shared_key(data):
        """Register a participant's DH shared public key"""
        coordinator = table.coordinator
        aggregate_key = coordinator.register_shared_key(
            request.sid,
            parse_int((data or {}).get('publicKey')),
            parse_int((data or {}).get('sharedPublicKey')),
        )
        print(f"[table] Shared key registered for {coordinator.names[request.sid]}")
        if aggregate_key is None:
            return

        print(f"[table] Aggregate public key: {hex(aggregate_key)}")
        emit('aggregate_key', {'aggregateKey': hex(aggregate_key)}, room=ROOM_NAME)

        holder, deck = coordinator.start_shuffle()
        print(f"[table] Deck encrypted; {coordinator.names[holder]} shuffles first")
        emit('shuffle_turn', {'deck': deck.to_dict()}, room=holder)

    @socketio.on('submit_shuffle')
    @protocol_handler(table)
    def handle_shuffle(data):
        """Accept a shuffle step from the current deck holder"""
        coordinator = table.coordinator
        deck = EncryptedDeck.from_dict((data or {}).get('deck'), table.params)
        holder, next_deck = coordinator.accept_shuffle(request.sid, deck)
        print(f"[table] {coordinator.names[request.sid]} shuffled and re-encrypted the deck")

        if holder is not None:
            emit('shuffle_turn', {'deck': next_deck.to_dict()}, room=holder)
            return

        print("[table] Shuffle complete; dealing")
        emit('dealt', coordinator.deal.to_dict(), room=ROOM_NAME)

    @socketio.on('request_reveal')
    @protocol_handler(table)
    def handle_request_reveal(data=None):
        """Start revealing the sender's hole cards to the sender"""
        for session in table.coordinator.open_hole_reveal(request.sid):
            send_decrypt_request(session)

    @socketio.on('reveal_community')
    @protocol_handler(table)
    def handle_reveal_community(data):
        """Start the collective revelation of flop, turn or river"""
        stage = (data or {}).get('stage')
        if stage not in STAGES:
            emit('error_msg', {'reason': 'unknown_stage', 'message': f'Unknown stage: {stage}'})
            return
        if stage in table.stage_sessions:
            return  # already being revealed
        sessions = table.coordinator.open_community_reveal(stage)
        table.stage_sessions[stage] = sessions
        for session in sessions:
            send_decrypt_request(session)

    @socketio.on('submit_partial')
    @protocol_handler(table)
    def handle_partial(data):
        """Route a partial decryption to the next contributor"""
        data = data or {}
        cipher = Cipher.from_dict(data.get('cipher') or {}, table.params)
        session = table.coordinator.submit_partial(data.get('sessionId'), request.sid, cipher)

        if not session.complete:
            send_decrypt_request(session)
        elif session.recipient is not None:
            # The owner removes its own share privately
            emit('reveal_ready', {
                'sessionId': session.session_id,
                'cipher': session.current.to_dict(),
            }, room=session.recipient)
        else:
            announce_completed_stages(table)

    @socketio.on('disconnect')
    def handle_disconnect(reason=None):
        """Free the seat while seating, otherwise abort the running game"""
        socket_id = request.sid
        print(f'[table] Client disconnected: {socket_id}')
        coordinator = table.coordinator
        with table.lock:
            if socket_id not in coordinator.names or coordinator.phase == 'aborted':
                return
            if coordinator.phase == 'seating':
                name = coordinator.names[socket_id]
                coordinator.unseat(socket_id)
                print(f"[table] {name} left; seat released")
                emit('participant_left', {
                    'id': socket_id,
                    'table': coordinator.to_dict(),
                }, room=ROOM_NAME, skip_sid=socket_id)
                return
            coordinator.abort('participant_disconnected')
            emit('game_aborted', {'reason': coordinator.aborted_reason},
                 room=ROOM_NAME, skip_sid=socket_id)


def announce_completed_stages(table):
    """Broadcast every community stage whose cards are all decrypted."""
    for stage, sessions in list(table.stage_sessions.items()):
        if sessions and all(s.complete for s in sessions):
            cards = [card_to_dict(s.plaintext) for s in sessions]
            print(f"[table] {stage.capitalize()}: {[c['name'] for c in cards]}")
            emit('community_revealed', {'stage': stage, 'cards': cards}, room=ROOM_NAME)
            table.stage_sessions[stage] = []


def check_deadlines(socketio, table):
    """Abort the game if a participant missed its turn deadline."""
    try:
        with table.lock:
            table.coordinator.check_deadlines()
    except UnresponsiveParticipant as e:
        print(f"[table] {e}")
        socketio.emit('game_aborted', {'reason': e.reason, 'participant': e.participant_id},
                      room=ROOM_NAME)
        return False
    return True


def create_app(config=None, clock=time.monotonic):
    """
    Build the Flask app and Socket.IO server for one table.

    Args:
        config (GameConfig, optional): Game configuration; read from the
            environment when omitted
        clock (callable): Monotonic time source for turn deadlines

    Returns:
        tuple: (app, socketio)
    """
    config = (config or GameConfig.from_env()).validate()

    app = Flask(__name__)
    socketio = SocketIO(app,
                        cors_allowed_origins="*",
                        ping_timeout=60,
                        ping_interval=25,
                        async_mode='threading')
    table = TableState(config, clock)
    app.extensions['poker_table'] = table

    @app.route('/')
    def index():
        return jsonify(table.coordinator.to_dict())

    register_handlers(socketio, table)
    return app, socketio


def start_deadline_watch(socketio, table):
    """Start the background task that enforces turn deadlines."""
    def watch():
        print("[table] Deadline watch started")
        while table.coordinator.phase != 'aborted':
            check_deadlines(socketio, table)
            socketio.sleep(1)

    socketio.start_background_task(watch)


if __name__ == '__main__':
    app, socketio = create_app()
    start_deadline_watch(socketio, app.extensions['poker_table'])

    port = int(os.environ.get('PORT', 3001))
    print(f"[table] Server listening on http://localhost:{port}")
    print(f"[table] Seats: {app.extensions['poker_table'].config.player_count}")
    socketio.run(app, host='0.0.0.0', port=port, allow_unsafe_werkzeug=True)
