# barcodepad

barcodepad turns barcode scans into gamepad input. A client reads scanned
codes, maps each one to a macro and sends it over TCP to a server. The
server drives a virtual gamepad through Linux `uinput` and plays the macro
on it: stick movements and button presses with the right timing.

Each connected client gets its own virtual gamepad. A client announces which
side of the playing field it is on (left or right), so "forward" always means
towards the opponent.

## How it works

1. The client connects and sends the magic value `0xDEADBEEF`. The server
   replies with a random 64-bit challenge. The client answers with the
   challenge run through a fixed mixing hash `challenge % 69` times. A client
   that sends the wrong magic value or answers wrong is dropped.
2. The client sends its side as one byte (0 for left, 1 for right).
3. Each scanned code is looked up and sent as a 16-bit big-endian macro
   number. Codes that are not known are sent as the `INVALID` macro, which
   does nothing.
4. The server keeps a queue per client, at most four macros deep. Input that
   arrives while the queue is full is dropped. Queued macros are played on
   that client's virtual gamepad in order.
5. When the client stops, it sends the disconnect marker `0xFFFF`. The
   server then closes the connection and tears down the virtual gamepad.
   A connection that closes or fails is treated the same way.

## Installation

```
pip install .
```

There are no runtime dependencies beyond the Python standard library
(Python 3.10 or later).

## Running the server

The server needs write access to `/dev/uinput` on a Linux machine, because
it creates a virtual gamepad named "Barcode controller" for every client.

```
barcodepad-server
```

By default it listens on all interfaces on TCP port 6969. Use `--host` and
`--port` to change that. Clients that fail the handshake, or for which no
virtual gamepad can be created, are logged and turned away.

## Running the client

Connect a barcode scanner that types each code followed by Enter, and start:

```
barcodepad-client
```

Options:

- `--address` — the server to connect to (default `192.168.0.106`)
- `--port` — the server's port (default `6969`)
- `--side` — `left` or `right` (default `right`)

If the server cannot be reached, the client retries once a second until it
is accepted. Then it reads standard input and treats every whitespace
separated word as one scan. The known codes are:

| Code            | Macro            |
|-----------------|------------------|
| `4251595201907` | `RUN_AND_ATTACK` |
| `6429810459824` | `JUMP`           |

At the end of input, or on Ctrl-C, the client sends the disconnect marker
and exits.

## Macros

- `RUN_AND_ATTACK` pushes the left stick forward and the right stick up for
  half a second, returns both sticks to neutral, waits 0.1 s, then taps the
  X button for 0.1 s.
- `JUMP` is reserved and currently sends no input.
- `INVALID` sends no input.

## Using it as a library

- `barcodepad.protocol` holds the wire format: `Side`, `Macro`,
  `HandshakeError`, `mix_hash`, `expected_response`, `encode_u16`,
  `decode_u16`, `encode_u64`, `decode_u64` and `recv_exact`.
- `barcodepad.controller` wraps the virtual gamepad. `create_controller`
  registers one through `/dev/uinput` (raising `ControllerError` on failure)
  and returns a `Controller` with `send_event`, `set_joystick`,
  `press_button`, `release_button`, `sync` and `close`; it also works as a
  context manager. A `Controller` can wrap any binary stream, which makes it
  easy to record events. `map_controller_range` maps a stick position in
  -1.0 to 1.0 onto the signed 16-bit axis range.
- `barcodepad.macros` defines `run_and_attack`, `jump` and `invalid`, and
  `perform` plays a macro code on a controller for a given side; unknown
  codes do nothing.
- `barcodepad.server` holds `ClientSession`, `server_handshake`,
  `accept_client` and `serve`, each of which accepts a factory for the
  controller so it can run without `uinput`.
- `barcodepad.client` holds `client_handshake`, `connect`, `send_macro` and
  `lookup_macro`.

## What it does not do

The mapping of barcodes to macros is fixed in `barcodepad.client` and cannot
be changed from the command line. The server's virtual gamepad works only on
Linux with `uinput`; there is no support for other platforms. The
handshake is a simple check that both ends speak the same protocol, not
authentication or encryption.

## Running the tests

```
pip install .[test]
pytest
```