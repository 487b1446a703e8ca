"""
Relay caching package.

Responses are memoized under URL-shaped keys derived from the translated
conversation. Entries are never updated in place; changing the cached
payload shape requires bumping the cache format version.
"""
