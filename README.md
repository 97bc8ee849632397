# pollbot

A Mattermost bot that runs polls in chat channels. Polls and votes are
stored in a Tarantool database, so they survive bot restarts. The bot's
replies are in Russian.

## Installation

```
pip install .
```

For running the tests:

```
pip install ".[test]"
pytest
```

## Configuration

Settings come from environment variables and from a `.env` file (by
default `.env` in the working directory; another file can be given with
`--env-file`). A variable set in the environment wins over the file; a
value that is missing or empty falls back to the default.

| Variable         | Default                 | Meaning                           |
|------------------|-------------------------|-----------------------------------|
| `MATTERMOST_URL` | `http://localhost:8065` | Base URL of the Mattermost server |
| `BOT_TOKEN`      | `token`                 | Access token of the bot account   |
| `TARANTOOL_ADDR` | `localhost:3301`        | Tarantool `host:port`             |

Example `.env`:

```
MATTERMOST_URL=http://localhost:8065
BOT_TOKEN=token
TARANTOOL_ADDR=localhost:3301
```

## Running

```
pollbot
pollbot --env-file path/to/settings.env
```

The bot connects to Tarantool (giving up after 3 seconds), signs in to
Mattermost by fetching `/api/v4/users/me`, then listens for new posts on
the `/api/v4/websocket` event stream. If the stream drops or stops
answering pings it reconnects. Ctrl+C or SIGTERM stops it. The command
exits with status 1 if either connection cannot be made at start-up.

Logging goes to the console at DEBUG level.

## Commands

Type these as ordinary messages in a channel the bot can read. Arguments
that contain spaces go in double quotes; the quotes are removed.

| Command                                   | Effect                                   |
|-------------------------------------------|------------------------------------------|
| `/poll "Question" "Option 1" "Option 2"`  | Create a poll and announce its ID        |
| `/vote <poll ID> <option number>`         | Vote, or replace an earlier vote         |
| `/results <poll ID>`                      | Post vote counts for each option         |
| `/close <poll ID>`                        | Close a poll (its creator only)          |
| `/delete_poll <poll ID>`                  | Delete a poll (its creator only)         |
| `/polls`                                  | List the active polls in the channel     |

A poll needs a question and at least one option. Option numbers start at
1. Voting in a closed poll is refused. Usage errors and failures are
answered as a reply in the thread of the message; announcements, results
and listings are posted to the channel. Other messages are ignored.

## Database layout

The Tarantool instance must already have these spaces; the bot does not
create them.

- `polls`: tuples `(id, question, options, created_by, channel_id, active)`,
  with the options joined by `|`; primary key on `id` and an index named
  `channel` on `channel_id`.
- `votes`: tuples `(poll_id, user_id, option_idx)`, with `option_idx`
  counted from 0; an index named `primary` on `(poll_id, user_id)` and
  one named `poll_id` on `poll_id`.

Polls are read with a call to `box.space.polls:get`. Space and index
names are looked up through the server's `_vspace` and `_vindex` views.
The client does not authenticate, so it works as the `guest` user, which
needs the matching rights.

## Using the pieces in code

The storage and service layers work without the chat side:

```python
from pollbot.tarantool import TarantoolConnection
from pollbot.repository import TarantoolPollRepository, TarantoolVoteRepository
from pollbot.service import VotingService

with TarantoolConnection("localhost:3301", 3.0) as conn:
    service = VotingService(TarantoolPollRepository(conn), TarantoolVoteRepository(conn))
    poll = service.create_poll("Lunch?", ["Pizza", "Soup"], "user1", "channel1")
    service.vote(poll.id, "user2", 0)
    results = service.get_results(poll.id)
    print(results.counts)  # Counter of votes per 0-based option index
```

Other parts:

- `pollbot.config.load_config(env_file)` returns a `Config` with
  `mattermost_url`, `bot_token` and `tarantool_addr`.
- `pollbot.bot.Bot(server_url, token)` signs in (raising `ConnectionError`
  on failure) and offers `create_post`, `listen` and `close`;
  `pollbot.bot.to_websocket_url` maps `http(s)://` to `ws(s)://`.
- `pollbot.manager.CommandManager(service).process_command(bot, post)`
  dispatches one message; `pollbot.handlers.split_args` does the quoting.
- `pollbot.app.parse_posted_event` extracts a `Post` from a `posted` event.

Failures are raised as subclasses of `pollbot.errors.PollError`:
`PollNotFound`, `PermissionDenied` and `StorageError`, the last also the
base of `pollbot.tarantool.TarantoolError`.

## What it does not do

- It does not register slash commands with Mattermost; the commands are
  read from ordinary channel messages.
- It does not create the Tarantool spaces or indexes, and it does not log
  in to Tarantool as any user other than `guest`.
- It does not check that a vote's option number is within the poll's
  options; results list only the poll's own options.