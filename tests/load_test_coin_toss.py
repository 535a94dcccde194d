#!/usr/bin/env python3
import argparse
import asyncio
import random
import time
from collections import Counter
from typing import List

import httpx

from common import FLIP_TARGET, make_nickname, percentiles


def _err_excerpt(resp) -> str:
    try:
        j = resp.json()
        if isinstance(j, dict):
            err = j.get('error') or j.get('message') or j
            return str(err)[:200]
        return str(j)[:200]
    except ValueError:
        return (getattr(resp, 'text', '') or '')[:200]


async def one_participant(base_url: str, session_id: str, results: List[float], errors: List[str],
                          heads: List[int], user_id: int, jitter_ms: int = 0):
    timeout = httpx.Timeout(60.0, connect=30.0)
    # New client per participant: separate cookies, separate device
    async with httpx.AsyncClient(base_url=base_url, timeout=timeout, follow_redirects=True) as client:
        try:
            t0 = time.perf_counter()
            r = await client.get('/join', params={'session': session_id})
            if r.status_code != 200 or r.json().get('state') != 'ready':
                errors.append(f"join:{r.status_code}:{_err_excerpt(r)}")
                return

            for _ in range(FLIP_TARGET):
                if jitter_ms and jitter_ms > 0:
                    await asyncio.sleep(random.random() * (jitter_ms / 1000.0))
                r = await client.post('/join/flip', json={'session': session_id})
                if r.status_code != 200:
                    errors.append(f"flip:{r.status_code}:{_err_excerpt(r)}")
                    return

            r = await client.post('/join/submit', json={'session': session_id, 'nickname': make_nickname(user_id)})
            if r.status_code != 201:
                errors.append(f"submit:{r.status_code}:{_err_excerpt(r)}")
                return
            heads.append(r.json()['recorded']['heads'])

            t1 = time.perf_counter()
            results.append((t1 - t0) * 1000.0)  # ms
        except httpx.HTTPError as e:
            errors.append(f"exc:{type(e).__name__}:{e}")


async def run_load(base: str, concurrency: int, iterations: int, jitter_ms: int) -> int:
    results: List[float] = []
    errors: List[str] = []
    heads: List[int] = []

    async with httpx.AsyncClient(base_url=base, timeout=30.0) as host:
        r = await host.post('/host/sessions')
        if r.status_code != 201:
            print(f"[ERROR] open session failed: {r.status_code} {_err_excerpt(r)}")
            return 1
        session_id = r.json()['session']['id']

        launched = 0
        while launched < iterations:
            wave = min(concurrency, iterations - launched)
            tasks = [one_participant(base, session_id, results, errors, heads, launched + i + 1, jitter_ms=jitter_ms)
                     for i in range(wave)]
            await asyncio.gather(*tasks)
            launched += wave

        r = await host.get(f'/host/sessions/{session_id}')
        aggregate = r.json().get('aggregate', {})

    ok = len(results)
    err = len(errors)
    print(f"\n===== Load Test Summary =====")
    print(f"Session:      {session_id}")
    print(f"Participants: {ok + err}")
    print(f"Success:      {ok}")
    print(f"Errors:       {err}")
    if err:
        c = Counter(errors)
        print("Top errors:")
        for k, v in c.most_common(5):
            print(f"  {k}: {v}")

    if results:
        p = percentiles(results, (50, 90, 95, 99))
        print("Latency (ms) for full flow (join -> flips -> submit):")
        print(f"  p50: {p[50]:.1f}  p90: {p[90]:.1f}  p95: {p[95]:.1f}  p99: {p[99]:.1f}")
        print(f"  min: {min(results):.1f}  max: {max(results):.1f}  avg: {sum(results)/len(results):.1f}")

    print(f"Host view: participants={aggregate.get('participant_count')} "
          f"heads={aggregate.get('total_heads')}/{aggregate.get('total_trials')} p={aggregate.get('p_value')}")
    consistent = aggregate.get('participant_count') == ok and aggregate.get('total_heads') == sum(heads)
    print(f"Consistent with submissions: {consistent}")
    print("============================\n")
    return 0 if consistent and not err else 1


def main():
    ap = argparse.ArgumentParser(description='Concurrent participants submitting to one session')
    ap.add_argument('--host', default='127.0.0.1')
    ap.add_argument('--port', default='5002')
    ap.add_argument('--concurrency', type=int, default=50, help='Concurrent participants in a wave')
    ap.add_argument('--iterations', type=int, default=50, help='Total participants')
    ap.add_argument('--jitter-ms', type=int, default=0, help='Random delay up to N ms before each flip')
    args = ap.parse_args()

    base = f"http://{args.host}:{args.port}"
    raise SystemExit(asyncio.run(run_load(base, args.concurrency, args.iterations, args.jitter_ms)))


if __name__ == '__main__':
    main()
