# mosdns

mosdns is the core of a pluggable DNS forwarder. A configuration file lists
the plugins to load, optional include files, logging options and an optional
HTTP API address. The package also holds the building blocks such a
forwarder is made of: LRU maps, domain and IP list matchers, a hosts table,
PTR name parsing, per-client rate limiting, DNS message helpers and DNS over
TCP/UDP framing.

## Installation

```
pip install .
```

For running the test suite:

```
pip install .[test]
pytest
```

## Running

Start the server with a configuration file:

```
mosdns start -c config.yaml
```

Options of `start`:

- `-c`, `--config`: the configuration file. Without it, `config.json`,
  `config.yaml` or `config.yml` is looked up in the working directory.
- `-d`, `--dir`: change to this working directory before reading the
  configuration.
- `--cpu`: restrict the process to at most this many processors, where the
  platform supports it.

The server runs until it receives SIGINT or SIGTERM, or until a component
reports a fatal error; plugins that have a `close()` method are then closed.

Print the version:

```
mosdns version
```

## Configuration

```yaml
log:
  level: info       # debug, info, warn, error, dpanic, panic, fatal
  file: ""          # empty means stderr
  production: false # true switches to JSON output

include:
  - extra.yaml      # loaded before the plugins below

plugins:
  - tag: my_plugin
    type: some_type
    args: {}

api:
  http: "127.0.0.1:8080"
```

Unknown keys are an error. Included files are loaded before the plugins of
the file that includes them, and include nesting is limited in depth.

Each plugin needs a `type` registered with
`mosdns.plugin.reg_new_plugin_func(typ, init_func, new_args)`. The init
function is called with a `mosdns.plugin.BP` (the plugin's tag, a named
logger and the `mosdns.core.Mosdns` instance) and the plugin's arguments.
When `new_args` returns a dataclass, a mapping under `args` is applied to
its fields. A plugin without a `tag` gets a generated one; duplicate tags
are an error. Plugins registered with `reg_new_preset_plugin_func` are
created for every instance.

A plugin can mount a WSGI application under `/plugins/<tag>` with
`BP.reg_api`. When `api.http` is set, the instance serves these
applications; any other path returns a plain-text page listing the mounted
prefixes.

## Library use

Domain matching with typed rules (`full:`, `domain:`, `regexp:`,
`keyword:`); rules without a prefix are treated as `domain:`. `match`
returns a `(value, found)` tuple:

```python
from mosdns.domain_matcher import new_domain_mix_matcher, load_from_text

matcher = new_domain_mix_matcher()
load_from_text(matcher, """
# comments and blank lines are ignored
example.com
full:exact.example.org
regexp:^ads[0-9]+\\.
""", None)
matcher.match("www.example.com.")  # (None, True)
```

IP lists, merged and searched with binary search:

```python
from mosdns.netlist import NetList, load_from_text

nets = NetList()
load_from_text(nets, "192.168.0.0/16")
load_from_text(nets, "2001:db8::1")
nets.sort()
nets.contains("192.168.1.1")  # True
```

A hosts table answering A and AAAA queries:

```python
import dns.message
from mosdns.domain_matcher import MixMatcher, MATCHER_DOMAIN, load_from_text
from mosdns.hosts import Hosts, parse_ips

matcher = MixMatcher()
matcher.set_default_matcher(MATCHER_DOMAIN)
load_from_text(matcher, "dns.example.com 192.0.2.1 2001:db8::1", parse_ips)
hosts = Hosts(matcher)
reply = hosts.lookup_msg(dns.message.make_query("dns.example.com.", "A"))
```

Reverse lookups:

```python
from mosdns.ptr_parser import parse_ptr_qname

parse_ptr_qname("4.4.8.8.in-addr.arpa.")  # IPv4Address('8.8.4.4')
```

A bounded LRU:

```python
from mosdns.lru import LRU

lru = LRU(2, None)
lru.add("a", 1)
lru.add("b", 2)
lru.add("c", 3)    # evicts "a"
lru.get("a", None) # None
```

Per-client rate limiting:

```python
from mosdns.rate_limiter import Limiter

limiter = Limiter(10, 20)   # 10 queries per second, bursts of 20
limiter.allow("192.0.2.7")
limiter.close()
```

Other modules:

- `mosdns.concurrent_lru`: `ConcurrentLRU` (an LRU behind a lock) and
  `ShardedLRU`.
- `mosdns.linked_list`: the doubly linked list the LRU is built on.
- `mosdns.dns_msg`: TTL helpers (`get_minimal_ttl`, `set_ttl`,
  `apply_maximum_ttl`, `apply_minimal_ttl`, `subtract_ttl`), type and class
  names, `fake_soa` and `gen_empty_reply`.
- `mosdns.net_io`: length-prefixed DNS messages over TCP streams and
  datagrams over UDP sockets.
- `mosdns.query_context`: `Context`, the per-query state passed between
  plugins, with EDNS0 handling, stored values and marks.
- `mosdns.safe_close`: `SafeClose`, coordinated shutdown of attached
  threads.
- `mosdns.mlog`: the global logger and loggers built from `LogConfig`.

## What this package does not do

- It registers no plugin types of its own: there are no built-in DNS
  listeners, upstream forwarders or caching plugins. A configuration can
  only use types that the embedding code registers.
- It has no expiring response cache and no sharded concurrent map.
- The HTTP API serves only the plugin applications; there are no metrics or
  profiling endpoints.
- There is no command for installing or managing it as a system service.