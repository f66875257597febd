# labnet

Tools for building and testing distributed systems inside one Python
process:

- **A simulated RPC network** (`labnet.network.Network`). Clients and servers
  exchange encoded messages through it. The network can disable clients,
  lose or delay requests and replies, hold replies back for a long time, and
  kill servers while calls are in flight.
- **A message codec** (`labnet.codec`). It encodes and decodes declared
  message fields in the protobuf wire format.
- **A linearizability checker** (`labnet.checker`). It checks histories of
  operations or events against a sequential model such as
  `labnet.kv_model.KvModel`.

The package has no dependencies outside the standard library.

## Install

```
pip install .
pip install ".[test]"   # adds pytest for the test suite
```

## Messages

Subclass `labnet.codec.Message` and list the fields in a `FIELDS` tuple of
`labnet.codec.Field(tag, name, kind, repeated=False)`. The subclass must be
constructible with no arguments, and a dataclass is the usual choice.

The field kinds are in `labnet.codec.FieldKind`: `INT32`, `INT64`, `UINT32`,
`UINT64`, `BOOL`, `ENUM`, `STRING` and `BYTES`.

```python
from dataclasses import dataclass, field
from labnet.codec import Field, FieldKind, Message, decode

@dataclass
class Note(Message):
    FIELDS = (
        Field(1, "id", FieldKind.UINT64),
        Field(2, "tags", FieldKind.STRING, repeated=True),
    )
    id: int = 0
    tags: list[str] = field(default_factory=list)

data = Note(id=42, tags=["a", "b"]).encode()
assert decode(Note, data) == Note(id=42, tags=["a", "b"])
```

Encoding follows proto3 rules:

- Scalar fields that hold their default value are left out.
- Repeated numeric fields are written packed.
- Unknown fields are skipped when decoding.

A value of the wrong type or out of range raises `labnet.codec.EncodeError`.
Malformed input raises `labnet.codec.DecodeError`. Both are `ValueError`
subclasses.

`labnet.fixture` holds a ready-made example: `Msg`, with an enumeration field
typed by `MsgType` (`UNKNOWN`, `PUT`, `GET`, `DEL`), a number, a string and
repeated bytes. `Msg.message_type()` returns the enumeration member, or
`UNKNOWN` for a value the enumeration does not define.

## Services, servers and clients

A `labnet.service.ServiceDefinition` names a service and maps each method to
its request and reply message types. An implementation is any object with a
method of each name. Each method takes the decoded request and returns the
reply message.

```python
from dataclasses import dataclass
from labnet.codec import Field, FieldKind, Message
from labnet.network import Network
from labnet.server import ServerBuilder
from labnet.service import ServiceDefinition

@dataclass
class Echo(Message):
    FIELDS = (Field(1, "x", FieldKind.INT64),)
    x: int = 0

echo = ServiceDefinition("echo", {"ping": (Echo, Echo)})

class EchoService:
    def ping(self, req):
        return req

with Network() as net:
    builder = ServerBuilder("echo_server")
    echo.add_service(EchoService(), builder)
    net.add_server(builder.build())

    client = echo.client(net.create_client("client"))
    net.enable("client", True)
    net.connect("client", "echo_server")

    reply = client.ping(Echo(x=777)).result()   # or client.call("ping", Echo(x=777))
    assert reply == Echo(x=777)
```

### Calls and replies

Calls return a `concurrent.futures.Future` of the decoded reply.

### Servers

`ServerBuilder.add_service` raises `OtherError` if the service name is
already registered. `Server.dispatch` routes `"service.method"` names, and
`Server.count()` reports how many requests the server has dispatched.

### Errors

A failed call's future raises a subclass of `labnet.errors.RpcError`:

- `RpcTimeout`: no reply came back.
- `Stopped`: the network is closed, or the server was killed.
- `Unimplemented`: the service or method is unknown.
- `EncodeFailure` or `DecodeFailure`: a message could not be encoded or
  decoded.
- `RecvError`: the reply channel was dropped.
- `OtherError`: covers hook rejections and handler exceptions.

Two errors compare equal with `==` when they have the same class and the
same details.

### Hooks

To intercept traffic, pass a `labnet.client.RpcHooks` subclass to
`Client.set_hooks`. `Client.clear_hooks` removes it.

- `before_dispatch(fq_name, req)` sees each request. It can raise an
  `RpcError` to reject the request.
- `after_dispatch(fq_name, resp)` receives either the reply bytes or the
  error. It returns the reply to deliver, or raises the error to deliver.

`ServiceClient.spawn` runs a function on the client's worker pool, and
`Network.spawn` runs one on the network's worker pool.

## Faults

A client starts disabled and unconnected. A call from a disabled client, or
from one with no live server, waits a short random time and then fails with
`RpcTimeout`. With `Network.set_long_delays(True)` that wait can last up to
7 seconds.

- `Network.set_reliable(False)` adds short delays and drops about 10% of
  requests and 10% of replies.
- `Network.set_long_reordering(True)` holds back about two thirds of replies
  for 200 ms or more.
- `Network.delete_server(name)` kills a server. Calls in flight to it fail
  with `Stopped`.

### Counters

- `Network.count(server_name)` gives the requests one live server has
  received. It raises `KeyError` if there is no such live server.
- `Network.total_count()` gives all requests the network has processed.

### Closing

`Network.close()`, or leaving a `with` block, stops the network from
accepting further calls.

## Checking linearizability

Describe the system with a `labnet.model.Model` subclass:

- `init()` returns the initial state.
- `step(state, input, output)` returns `(legal, new_state)`.
- `equal` and the `partition` methods are optional.

Then pass a history to a checker function, which returns `True` when the
history is linearizable:

- `labnet.checker.check_operations` takes `labnet.model.Operation` records
  with call and finish times.
- `labnet.checker.check_events` takes `labnet.model.Event` records of kind
  `EventKind.CALL` or `EventKind.RETURN`, paired by `id`.

```python
from labnet.checker import check_events, check_operations
from labnet.kv_model import KvInput, KvModel, KvOp, KvOutput
from labnet.model import Event, EventKind, Operation

history = [
    Operation(KvInput(KvOp.PUT, "x", "1"), 0, KvOutput(), 10),
    Operation(KvInput(KvOp.GET, "x"), 20, KvOutput("1"), 30),
]
assert check_operations(KvModel(), history)

events = [
    Event(EventKind.CALL, KvInput(KvOp.APPEND, "x", "a"), 0),
    Event(EventKind.RETURN, KvOutput(), 0),
    Event(EventKind.CALL, KvInput(KvOp.GET, "x"), 1),
    Event(EventKind.RETURN, KvOutput("b"), 1),
]
assert not check_events(KvModel(), events)
```

`KvModel` models `GET`, `PUT` and `APPEND` on string values and checks each
key separately.

Each partition is checked on its own thread. `timeout` is given in seconds,
and 0 means wait without limit. If the wait runs out, the result may be a
false positive.

## What it does not do

- Everything runs inside one process. There is no real network transport,
  no listening server and no command-line tool.
- Nothing is stored on disk.
- The codec handles only the field kinds listed above. It has no
  floating-point, fixed-width, zig-zag, nested-message or map fields.