"""Locust profile: deterministic creates, cached redirects, admin reads.

Creates draw from a bounded URL space, so repeats exercise the idempotent
insert path and redirects quickly turn into cache hits. Push the user count
past ``RATE_LIMIT_REQUESTS`` to watch the admission gate answer 429 instead
of letting latency grow.

    locust -f stress/locustfile.py --host http://localhost:8080
"""

import random

from locust import HttpUser, between, task

URL_SPACE = 5000
KNOWN_CODES_LIMIT = 500


class ShortUrlUser(HttpUser):
    wait_time = between(0.05, 0.3)

    def on_start(self) -> None:
        self.known: list[str] = []

    def _remember(self, response) -> None:
        if response.status_code != 201:
            return
        self.known.append(response.json()["short_code"])
        del self.known[:-KNOWN_CODES_LIMIT]

    def _pick(self) -> str | None:
        return random.choice(self.known) if self.known else None

    @task(3)
    def shorten(self) -> None:
        long_url = f"https://example.com/item/{random.randrange(URL_SPACE)}"
        with self.client.post(
            "/shorten", json={"long_url": long_url}, name="POST /shorten", catch_response=True
        ) as response:
            if response.status_code == 429:
                response.success()
            self._remember(response)

    @task(10)
    def follow(self) -> None:
        code = self._pick()
        if code is None:
            return self.shorten()
        with self.client.get(
            f"/{code}", name="GET /:code", allow_redirects=False, catch_response=True
        ) as response:
            if response.status_code in (308, 429):
                response.success()

    @task(1)
    def detail(self) -> None:
        code = self._pick()
        if code is not None:
            self.client.get(f"/{code}/detail", name="GET /:code/detail")
