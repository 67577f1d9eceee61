# reconkit

A library for DNS and network reconnaissance.

## What it provides

- **Address arithmetic** (`reconkit.network`): `is_ipv4`, `is_ipv6`,
  `is_reserved_address` (returns the reserved CIDR holding an address, or
  `None`), `first_last`, `range_to_cidr`, `all_hosts`, `range_hosts`,
  `cidr_subset`, `ip_inc`, `ip_dec`, and `dial` for opening TCP or UDP
  sockets, bound to `network.local_addr` when it is set.
- **DNS name helpers** (`reconkit.dnsutil`): subdomain regular expressions,
  `remove_asterisk_label`, `reverse_ip`, `ipv6_nibble_format`,
  `expand_ipv6_addr`, `is_domain_name` and `is_subdomain`.
- **Filters** (`reconkit.stringfilter`): `StringFilter` (exact) and
  `BloomFilter` (probabilistic), each with `duplicate` and `has`.
- **Records** (`reconkit.records`): dataclasses such as `DNSRequest`,
  `AddrRequest`, `ASNRequest` and `Output`, plus `trusted_tag` and
  `sanitize_dns_request`.
- **ASN data** (`reconkit.asncache`): `ASNCache`, filled with `update` and
  searched with `asn_search` or `addr_search`.
- **DNS messages** (`reconkit.messages`): `query_msg`, `reverse_msg`,
  `walk_msg`, `extract_answers`, `answers_by_type`, and `xfr_requests`, which
  groups zone-transfer records by owner name.
- **Resolvers** (`reconkit.retries`, `reconkit.exchange`,
  `reconkit.baseresolver`, `reconkit.pool`): the `Resolver` interface,
  `Priority` levels, `retry_policy` and `pool_retry_policy`;
  `BaseResolver`, which sends rate-limited UDP queries to one server (falling
  back to TCP for truncated replies) and detects DNS wildcards
  (`wildcard_type` returns a `WildcardType`); and `ResolverPool`, which
  rotates across resolvers, pauses ones that time out too often and can
  confirm answers with a trusted baseline resolver.
- **Discovery** (`reconkit.subdomain`, `reconkit.walk`, `reconkit.ecs`):
  `first_proper_subdomain`, NSEC zone walking with `nsec_traversal`, and
  `client_subnet_check`, which raises unless a resolver hides EDNS client
  subnet data.
- **Word lists** (`reconkit.wordlist`): `read_word_list`, and hashcat-style
  mask expansion with `expand_mask` and `expand_mask_wordlist`.
- **Limits** (`reconkit.limits`): `get_file_limit` raises the open-file soft
  limit to the hard limit where possible and returns the usable value.
- **Graph exports**: `Node` and `Edge` from `reconkit.viz`, written by
  `reconkit.dot.write_dot_data` (Graphviz DOT),
  `reconkit.gexf.write_gexf_data` (GEXF for Gephi),
  `reconkit.graphistry.write_graphistry_data` (Graphistry JSON) and
  `reconkit.maltego.write_maltego_data` (Maltego CSV).

Failed DNS queries raise `reconkit.retries.ResolveError`, whose `rcode`
attribute holds the response code; invalid masks raise
`reconkit.wordlist.MaskError`.

## Installation

```
pip install .
```

Tests need the `test` extra:

```
pip install ".[test]"
pytest
```

## Examples

```python
import ipaddress
from reconkit.network import first_last, range_to_cidr, is_reserved_address

net = ipaddress.ip_network("72.237.4.0/24")
first, last = first_last(net)          # 72.237.4.0, 72.237.4.255
range_to_cidr(first, last)             # IPv4Network('72.237.4.0/24')
is_reserved_address("192.168.1.10")    # '192.168.0.0/16'
is_reserved_address("8.8.8.8")         # None
```

```python
from reconkit.wordlist import expand_mask

expand_mask("www?d")                   # ['www0', 'www1', ..., 'www9']
```

```python
from reconkit.dnsutil import subdomain_regex, remove_asterisk_label

subdomain_regex("example.com").search("see api.example.com").group()  # 'api.example.com'
remove_asterisk_label("*.dev.example.com")                            # 'dev.example.com'
```

```python
import io
from reconkit.viz import Node, Edge
from reconkit.dot import write_dot_data

nodes = [Node(id=0, type="domain", label="example.com", title="example.com"),
         Node(id=1, type="subdomain", label="www.example.com", title="www.example.com")]
edges = [Edge(from_=0, to=1, label="root", title="root")]
buf = io.StringIO()
write_dot_data(buf, nodes, edges)
print(buf.getvalue())
```

```python
from reconkit.baseresolver import BaseResolver
from reconkit.messages import extract_answers, query_msg
from reconkit.retries import Priority, retry_policy

resolver = BaseResolver("8.8.8.8", per_sec=10)
reply = resolver.query(query_msg("example.com", "A"), Priority.NORMAL, retry_policy)
print(extract_answers(reply))
resolver.stop()
```

## What it does not do

- There is no command-line program; everything is used as a library.
- It does not perform DNS zone transfers itself. `messages.xfr_requests`
  only groups records from a transfer obtained by other means.
- It has no D3/HTML graph export; graphs can be written as DOT, GEXF,
  Graphistry JSON or Maltego CSV.
- `ASNCache` starts empty and holds only what is given to `update`; no ASN
  data is bundled or downloaded.