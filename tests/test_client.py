import socket
import threading

import pytest

from firews import framing, jwt
from firews.client import FireWSClient
from firews.config import Settings
from firews.errors import ClientClosed, ConnectError, FireWSError, MissingCredential, NameSpaceError
from firews.messages import Response


def client_for(sock):
    return FireWSClient.from_socket(sock, address='tcp://test:1')


# Private channel pre-check

@pytest.mark.parametrize('channel', ['general', '', 'gen#eral'])
def test_subscribe_public_channel_skips_server(untouchable_socket, channel):

    client = client_for(untouchable_socket)
    assert client.subscribe(channel, 'u1') is False
    assert client.unsubscribe(channel, 'u1') is False


def test_subscribe_private_channel_is_one_round_trip(make_socket):

    sock = make_socket({'success': True})
    client = client_for(sock)

    assert client.subscribe('#general', 'u1') is True
    assert sock.sent_frames() == [
        {'action': 'subscribe', 'channel': '#general', 'params': {'userId': 'u1'}},
    ]
    assert len(sock.incoming) == 0


def test_unsubscribe_private_channel(make_socket):

    sock = make_socket({'success': False, 'reason': 'not subscribed', 'code': 404})
    client = client_for(sock)

    assert client.unsubscribe('#general', 'u1') is False
    assert sock.sent_frames()[0]['action'] == 'unsubscribe'


# Namespace administration

def test_register_namespace_returns_secret(make_socket):

    sock = make_socket({'success': True, 'secretKey': 's3cret'})
    client = client_for(sock)

    assert client.register_namespace('myapp', 'control-key') == 's3cret'
    assert sock.sent_frames() == [
        {'action': 'registerNameSpace', 'name': 'myapp', 'key': 'control-key'},
    ]


def test_register_namespace_reply_without_secret(make_socket):

    client = client_for(make_socket({'success': True}))
    assert client.register_namespace('myapp', 'control-key') is None


def test_register_namespace_failure(make_socket):

    sock = make_socket({'success': False, 'reason': 'bad key', 'code': 403})
    client = client_for(sock)

    with pytest.raises(NameSpaceError) as info:
        client.registerNameSpace('myapp', 'wrong')

    assert info.value.reason == 'bad key'
    assert info.value.code == 403


def test_auth_caches_secret_and_chains(make_socket):

    sock = make_socket({'success': True})
    client = client_for(sock)

    assert client.authenticated is False
    assert client.auth('myapp', 's3cret') is client
    assert client.authenticated is True
    assert sock.sent_frames() == [{'action': 'auth', 'name': 'myapp', 'sKey': 's3cret'}]

    token = client.generate_auth_string('user-42')
    assert jwt.decode(token, 's3cret', 'HS256') == 'user-42'


def test_auth_failure(make_socket):

    client = client_for(make_socket({'success': False, 'reason': 'unknown namespace', 'code': 404}))

    with pytest.raises(NameSpaceError) as info:
        client.auth('nope', 'x')

    assert info.value.reason == 'unknown namespace'
    assert info.value.code == 404
    assert client.authenticated is False


def test_generate_auth_string_without_secret(untouchable_socket):

    client = client_for(untouchable_socket)

    with pytest.raises(MissingCredential):
        client.generate_auth_string('user-42')
    with pytest.raises(MissingCredential):
        client.generateAuthString(None, 'secret')

    token = client.generate_auth_string('user-42', 'explicit')
    assert jwt.decode(token, 'explicit') == 'user-42'


# Data plane request shapes

@pytest.mark.parametrize('call, expected', [
    (lambda c: c.send('news', {'t': 1}),
     {'action': 'emit', 'channel': 'news', 'data': {'t': 1}, 'params': {'userId': None}}),
    (lambda c: c.send('news', 'hi', 'u1'),
     {'action': 'emit', 'channel': 'news', 'data': 'hi', 'params': {'userId': 'u1'}}),
    (lambda c: c.set('news', [1, 2], 'u1', 60),
     {'action': 'set', 'channel': 'news', 'data': [1, 2],
      'params': {'userId': 'u1', 'emit': False, 'ttl': 60}}),
    (lambda c: c.push('news', 3),
     {'action': 'push', 'channel': 'news', 'data': 3,
      'params': {'userId': None, 'emit': False, 'ttl': None}}),
    (lambda c: c.get('news'),
     {'action': 'get', 'channel': 'news', 'params': {'userId': None}}),
    (lambda c: c.get('#room', 'u1'),
     {'action': 'get', 'channel': '#room', 'params': {'userId': 'u1'}}),
    (lambda c: c.channel_info('news'),
     {'action': 'channelInfo', 'channel': 'news'}),
])
def test_data_plane_requests(make_socket, call, expected):

    reply = {'success': True, 'data': {'state': 1}}
    sock = make_socket(reply)

    result = call(client_for(sock))

    assert sock.sent_frames() == [expected]
    assert isinstance(result, Response)
    assert result.success is True
    assert result.error is None
    assert dict(result) == reply
    assert result.data == {'state': 1}


@pytest.mark.parametrize('method, action', [
    ('set_and_send', 'set'),
    ('push_and_send', 'push'),
])
def test_and_send_variants_return_flag(make_socket, method, action):

    sock = make_socket({'success': True}, {'success': False, 'reason': 'no', 'code': 1})
    client = client_for(sock)

    assert getattr(client, method)('news', {'a': 1}, 'u1', 10) is True
    assert getattr(client, method)('news', {'a': 1}) is False

    first, second = sock.sent_frames()
    assert first == {
        'action': action, 'channel': 'news', 'data': {'a': 1},
        'params': {'userId': 'u1', 'emit': True, 'ttl': 10},
    }
    assert second['params'] == {'userId': None, 'emit': True, 'ttl': None}


def test_data_plane_failure_is_returned_not_raised(make_socket):

    sock = make_socket({'success': False, 'reason': 'not authorized', 'code': 401})
    result = client_for(sock).send('news', 'hi')

    assert result.success is False
    assert not result
    assert result.error.reason == 'not authorized'
    assert result.error.code == 401
    assert result['reason'] == 'not authorized'


def test_large_reply_arrives_in_fragments(make_socket):

    state = {'items': ['x' * 100] * 50}
    sock = make_socket({'success': True, 'data': state}, piece=7)

    assert client_for(sock).get('news').data == state


def test_non_object_reply():

    response = Response.from_dict(['unexpected'])
    assert response.success is False
    assert response.raw == {'value': ['unexpected']}


# Lifecycle

def test_context_manager_closes(make_socket):

    sock = make_socket()
    with client_for(sock) as client:
        assert client.closed is False

    assert sock.closed is True
    assert client.closed is True

    # Closing again is harmless.
    client.close()


def test_close_on_error_path(make_socket):

    sock = make_socket()
    with pytest.raises(RuntimeError):
        with client_for(sock):
            raise RuntimeError('boom')

    assert sock.closed is True


def test_query_after_close(make_socket):

    client = client_for(make_socket({'success': True}))
    client.close()

    with pytest.raises(ClientClosed) as info:
        client.send('news', 'hi')

    assert isinstance(info.value, FireWSError)
    assert isinstance(info.value, ConnectionError)


def test_bad_chunk_size(make_socket):

    with pytest.raises(ValueError):
        FireWSClient.from_socket(make_socket(), chunk_size=0)


# Real sockets

def serve_one(listener, reply, received):
    conn, _ = listener.accept()
    with conn:
        received.append(framing.read_frame(conn))
        conn.sendall(framing.encode_frame(reply))


def test_tcp_round_trip():

    listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    listener.bind(('127.0.0.1', 0))
    listener.listen(1)
    port = listener.getsockname()[1]

    received = []
    reply = {'success': True, 'data': {'count': 3}}
    server = threading.Thread(target=serve_one, args=(listener, reply, received))
    server.start()

    try:
        with FireWSClient(f'tcp://127.0.0.1:{port}') as client:
            result = client.get('news', 'u1')
    finally:
        server.join(timeout=5)
        listener.close()

    assert result.data == {'count': 3}
    assert received == [{'action': 'get', 'channel': 'news', 'params': {'userId': 'u1'}}]


def test_connect_refused():

    # Grab a free port, then close it so nothing listens there.
    spare = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    spare.bind(('127.0.0.1', 0))
    port = spare.getsockname()[1]
    spare.close()

    with pytest.raises(ConnectError) as info:
        FireWSClient(f'tcp://127.0.0.1:{port}', connect_timeout=1)

    assert info.value.errno is not None
    assert isinstance(info.value, ConnectionError)


def test_from_settings_requires_address():

    with pytest.raises(ValueError):
        FireWSClient.from_settings(Settings())


def serve_auth(listener, reply, received):
    conn, _ = listener.accept()
    with conn:
        received.append(framing.read_frame(conn))
        conn.sendall(framing.encode_frame(reply))
        # Empty read once the client has closed its end.
        conn.settimeout(5)
        received.append(conn.recv(1))


def auth_listener(reply, received):
    listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    listener.bind(('127.0.0.1', 0))
    listener.listen(1)
    server = threading.Thread(target=serve_auth, args=(listener, reply, received))
    server.start()
    return listener, server


def test_from_settings_authenticates():

    received = []
    listener, server = auth_listener({'success': True}, received)
    port = listener.getsockname()[1]
    settings = Settings(address=f'tcp://127.0.0.1:{port}',
                        namespace='myapp', secret_key='s3cret')

    try:
        client = FireWSClient.from_settings(settings)
        assert client.authenticated is True
        assert client.generate_auth_string('u1') == jwt.generate_auth_string('u1', 's3cret')
        client.close()
    finally:
        server.join(timeout=5)
        listener.close()

    assert received == [
        {'action': 'auth', 'name': 'myapp', 'sKey': 's3cret'},
        b'',
    ]


def test_from_settings_closes_socket_when_auth_rejected():

    received = []
    reply = {'success': False, 'reason': 'bad key', 'code': 401}
    listener, server = auth_listener(reply, received)
    port = listener.getsockname()[1]
    settings = Settings(address=f'tcp://127.0.0.1:{port}',
                        namespace='myapp', secret_key='wrong')

    try:
        with pytest.raises(NameSpaceError) as info:
            FireWSClient.from_settings(settings)
    finally:
        server.join(timeout=5)
        listener.close()

    assert info.value.reason == 'bad key'
    # The server saw EOF, so the client closed its socket before raising.
    assert received == [
        {'action': 'auth', 'name': 'myapp', 'sKey': 'wrong'},
        b'',
    ]


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
