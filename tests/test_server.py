import pytest

from config import GameConfig
from poker_crypto.deck import EncryptedDeck
from poker_crypto.elgamal import Cipher
from poker_crypto.params import DomainParameters
from poker_models.participant import Participant
from server import check_deadlines, create_app


class Bot:
    """Test client that plays a participant over the socket events."""

    def __init__(self, socketio, app, name):
        self.client = socketio.test_client(app)
        self.name = name
        self.log = []
        self.hole = []
        self.community = {}
        self.participant = None
        self.auto = True

    def events(self, name):
        return [e['args'][0] for e in self.log if e['name'] == name]

    def join(self):
        self.client.emit('join', {'name': self.name})
        self.pump()
        joined = self.events('joined')
        if not joined:
            return None
        table = joined[0]['table']
        params = DomainParameters.from_dict(table['params'])
        self.coordinator_key = int(table['coordinatorPublicKey'], 16)
        self.participant = Participant(joined[0]['self']['id'], self.name, params)
        return joined[0]

    def send_shared_key(self):
        shared = self.participant.derive_shared_key(self.coordinator_key)
        self.client.emit('submit_shared_key', {
            'publicKey': hex(self.participant.public_key),
            'sharedPublicKey': hex(shared.shared_public_key),
        })

    def pump(self):
        received = self.client.get_received()
        for event in received:
            self.log.append(event)
            if self.auto:
                self.handle(event['name'], event['args'][0] if event['args'] else None)
        return bool(received)

    def handle(self, name, data):
        params = self.participant.params if self.participant else None
        if name == 'aggregate_key':
            self.participant.accept_aggregate_key(int(data['aggregateKey'], 16))
        elif name == 'shuffle_turn':
            deck = EncryptedDeck.from_dict(data['deck'], params)
            self.client.emit('submit_shuffle', {'deck': self.participant.shuffle(deck).to_dict()})
        elif name == 'decrypt_request':
            cipher = Cipher.from_dict(data['cipher'], params)
            self.client.emit('submit_partial', {
                'sessionId': data['sessionId'],
                'cipher': self.participant.partial_decrypt(cipher).to_dict(),
            })
        elif name == 'reveal_ready':
            self.hole.append(self.participant.reveal(Cipher.from_dict(data['cipher'], params)))
        elif name == 'community_revealed':
            self.community[data['stage']] = [card['number'] for card in data['cards']]


def run(bots):
    while any([bot.pump() for bot in bots]):
        pass


@pytest.fixture
def server(params):
    app, socketio = create_app(GameConfig(player_count=3, params=params))
    return app, socketio


@pytest.fixture
def seated(server):
    app, socketio = server
    bots = [Bot(socketio, app, name) for name in ('Ann', 'Ben', 'Cat')]
    for bot in bots:
        assert bot.join() is not None
    run(bots)
    return bots


def test_index_reports_table_state(server):
    app, _ = server
    response = app.test_client().get('/')
    assert response.status_code == 200
    assert response.get_json()['phase'] == 'seating'


def test_table_full(server, seated):
    app, socketio = server
    late = Bot(socketio, app, 'Dan')
    assert late.join() is None
    assert late.events('table_full') == [{'max': 3}]


def test_join_requires_name(server):
    app, socketio = server
    bot = Bot(socketio, app, '')
    assert bot.join() is None
    assert bot.events('error_msg')[0]['reason'] == 'name_required'


def test_full_hand_over_sockets(seated):
    bots = seated
    for bot in bots:
        bot.send_shared_key()
    run(bots)

    for bot in bots:
        assert len(bot.events('aggregate_key')) == 1
        assert len(bot.events('dealt')) == 1
    assert [len(bot.events('shuffle_turn')) for bot in bots] == [1, 1, 1]

    for bot in bots:
        bot.client.emit('request_reveal')
        run(bots)
    for stage in ('flop', 'turn', 'river'):
        bots[0].client.emit('reveal_community', {'stage': stage})
        run(bots)

    for bot in bots:
        assert len(bot.hole) == 2
        assert bot.community == bots[0].community
    community = bots[0].community
    assert [len(community[s]) for s in ('flop', 'turn', 'river')] == [3, 1, 1]

    cards = [c for bot in bots for c in bot.hole] + [c for s in community.values() for c in s]
    assert len(set(cards)) == 11
    assert all(1 <= c <= 52 for c in cards)


def test_forged_shared_key_rejected(seated):
    bot = seated[0]
    bot.client.emit('submit_shared_key', {
        'publicKey': hex(bot.participant.public_key),
        'sharedPublicKey': hex(bot.participant.public_key),
    })
    bot.pump()
    assert bot.events('error_msg')[-1]['reason'] == 'invalid_contribution'


def test_out_of_turn_shuffle_rejected(seated):
    bots = seated
    for bot in bots:
        bot.auto = False
        bot.send_shared_key()
    run(bots)
    for bot in bots:
        bot.participant.accept_aggregate_key(int(bot.events('aggregate_key')[0]['aggregateKey'], 16))

    turn = bots[0].events('shuffle_turn')[0]
    deck = EncryptedDeck.from_dict(turn['deck'], bots[1].participant.params)
    bots[1].client.emit('submit_shuffle', {'deck': bots[1].participant.shuffle(deck).to_dict()})
    run(bots)

    assert bots[1].events('error_msg')[-1]['reason'] == 'stale_or_duplicate_contribution'
    assert not bots[0].events('game_aborted')


def test_unchanged_deck_aborts_game(seated):
    bots = seated
    for bot in bots:
        bot.auto = False
        bot.send_shared_key()
    run(bots)

    deck = bots[0].events('shuffle_turn')[0]['deck']
    deck['version'] += 1
    bots[0].client.emit('submit_shuffle', {'deck': deck})
    run(bots)

    for bot in bots:
        assert bot.events('game_aborted') == [{'reason': 'shuffle_rejected'}]


def test_malformed_partial_rejected(seated):
    bot = seated[0]
    bot.client.emit('submit_partial', {'sessionId': 's1', 'cipher': {'c1': 'bad'}})
    bot.pump()
    assert bot.events('error_msg')[-1]['reason'] == 'malformed_ciphertext'


def test_disconnect_aborts_game(seated):
    bots = seated
    bots[2].client.disconnect()
    run(bots[:2])
    for bot in bots[:2]:
        assert bot.events('game_aborted') == [{'reason': 'participant_disconnected'}]


def test_deadline_watch_aborts_stalled_shuffle(params, clock):
    config = GameConfig(player_count=3, params=params, turn_timeout=5)
    app, socketio = create_app(config, clock=clock)
    bots = [Bot(socketio, app, name) for name in ('Ann', 'Ben', 'Cat')]
    for bot in bots:
        bot.join()
        bot.auto = False
    for bot in bots:
        bot.send_shared_key()
    run(bots)

    table = app.extensions['poker_table']
    assert check_deadlines(socketio, table)
    clock.advance(6)
    assert not check_deadlines(socketio, table)
    assert table.coordinator.aborted_reason == 'unresponsive_participant'

    run(bots)
    aborted = bots[1].events('game_aborted')
    assert aborted == [{'reason': 'unresponsive_participant', 'participant': bots[0].participant.id}]


@pytest.mark.parametrize('payload', ['Ann', {'name': 42}, {'name': '   '}, None])
def test_join_rejects_malformed_payload(server, payload):
    app, socketio = server
    client = socketio.test_client(app)
    client.emit('join', payload)
    received = client.get_received()
    assert [e['name'] for e in received] == ['error_msg']
    assert received[0]['args'][0]['reason'] == 'name_required'


def test_disconnect_while_seating_releases_seat(server):
    app, socketio = server
    ann, ben = Bot(socketio, app, 'Ann'), Bot(socketio, app, 'Ben')
    ann.join()
    ben.join()
    ann_id = ann.participant.id
    ann.client.disconnect()
    ben.pump()

    left = ben.events('participant_left')
    assert [e['id'] for e in left] == [ann_id]
    assert not ben.events('game_aborted')

    table = app.extensions['poker_table']
    assert table.coordinator.phase == 'seating'
    assert ann_id not in table.coordinator.names

    bots = [ben, Bot(socketio, app, 'Cat'), Bot(socketio, app, 'Dan')]
    for bot in bots[1:]:
        assert bot.join() is not None
    assert table.coordinator.seats == [bot.participant.id for bot in bots]

    for bot in bots:
        bot.send_shared_key()
    run(bots)
    assert all(len(bot.events('dealt')) == 1 for bot in bots)


def test_join_after_abort_reports_reason(server, seated):
    app, socketio = server
    seated[2].client.disconnect()
    run(seated[:2])

    late = Bot(socketio, app, 'Dan')
    assert late.join() is None
    assert late.events('game_aborted') == [{'reason': 'participant_disconnected'}]
    assert not late.events('table_full')


def test_forged_final_flag_does_not_end_shuffle(seated):
    bots = seated
    for bot in bots:
        bot.auto = False
        bot.send_shared_key()
    run(bots)
    for bot in bots:
        bot.participant.accept_aggregate_key(int(bot.events('aggregate_key')[0]['aggregateKey'], 16))

    first = bots[0]
    deck = EncryptedDeck.from_dict(first.events('shuffle_turn')[0]['deck'], first.participant.params)
    wire = first.participant.shuffle(deck).to_dict()
    wire['submitted'] = True
    first.client.emit('submit_shuffle', {'deck': wire})
    run(bots)

    assert len(bots[1].events('shuffle_turn')) == 1
    assert bots[1].events('shuffle_turn')[0]['deck']['version'] == 1
    assert not any(bot.events('dealt') for bot in bots)
    assert not any(bot.events('game_aborted') for bot in bots)
