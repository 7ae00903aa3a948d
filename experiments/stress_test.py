#!/usr/bin/env python3
"""
Simple stress test for the Ticket Pool API.
Fires concurrent purchases at a small pool to verify no ticket is sold twice.

Vendor and customer rows must already exist; tokens are minted locally with
the server's SECRET_KEY. Run from the repository root:

    PYTHONPATH=backend python experiments/stress_test.py
"""

import asyncio
import os
import time

import aiohttp

from ticketpool.core.security import create_access_token

API_URL = os.getenv("API_URL", "http://localhost:8000")
VENDOR_ID = int(os.getenv("VENDOR_ID", "1"))
CUSTOMER_IDS = range(1, int(os.getenv("CUSTOMERS", "50")) + 1)
TICKETS_RELEASED = int(os.getenv("TICKETS", "10"))


class StressTest:
    def __init__(self):
        self.results = {
            "purchased": 0,
            "sold_out": 0,
            "failed": 0,
            "errors": 0,
            "response_times": [],
        }
        self.ticket_ids = []

    async def release_tickets(self, session: aiohttp.ClientSession) -> bool:
        """Add a batch to the pool as the vendor."""
        headers = {"Authorization": f"Bearer {create_access_token(VENDOR_ID, 'vendor')}"}
        stamp = int(time.time())
        batch = {"tickets": [{"ticket_number": f"STRESS-{stamp}-{n}"} for n in range(TICKETS_RELEASED)]}

        async with session.post(f"{API_URL}/api/v1/tickets/batch", json=batch, headers=headers) as resp:
            if resp.status != 201:
                print(f"✗ Release failed: {resp.status}")
                return False
            data = await resp.json()
            print(f"✓ Released {data['added']} tickets, {data['available']} now available")
            return True

    async def available(self, session: aiohttp.ClientSession) -> int:
        async with session.get(f"{API_URL}/api/v1/tickets/available/count") as resp:
            return (await resp.json())["count"]

    async def purchase(self, session: aiohttp.ClientSession, customer_id: int):
        """Attempt to buy one ticket."""
        headers = {"Authorization": f"Bearer {create_access_token(customer_id, 'customer')}"}
        start = time.time()

        try:
            async with session.post(f"{API_URL}/api/v1/tickets/purchase", headers=headers) as resp:
                elapsed = (time.time() - start) * 1000
                self.results["response_times"].append(elapsed)

                if resp.status == 201:
                    data = await resp.json()
                    self.ticket_ids.append(data["id"])
                    self.results["purchased"] += 1
                    print(f"✓ Customer {customer_id} got ticket {data['ticket_number']} ({elapsed:.0f}ms)")
                elif resp.status == 409:
                    self.results["sold_out"] += 1
                    print(f"✗ Customer {customer_id} sold out ({elapsed:.0f}ms)")
                else:
                    self.results["failed"] += 1
                    print(f"✗ Customer {customer_id} failed: {resp.status} ({elapsed:.0f}ms)")
        except aiohttp.ClientError as e:
            self.results["errors"] += 1
            print(f"✗ Customer {customer_id} error: {e}")

    async def run(self):
        print(f"\n{'='*60}")
        print(f"STRESS TEST: {len(CUSTOMER_IDS)} customers, {TICKETS_RELEASED} new tickets")
        print(f"{'='*60}\n")

        async with aiohttp.ClientSession() as session:
            print("Phase 1: Releasing tickets...")
            if not await self.release_tickets(session):
                return
            pool_size = await self.available(session)
            print()

            print(f"Phase 2: {len(CUSTOMER_IDS)} customers buying simultaneously...")
            print("-" * 60)
            start_time = time.time()

            await asyncio.gather(*(self.purchase(session, customer_id) for customer_id in CUSTOMER_IDS))

            total_time = time.time() - start_time
            remaining = await self.available(session)

        print("\n" + "="*60)
        print("RESULTS")
        print("="*60)
        print(f"Total time:       {total_time:.2f}s")
        print(f"Purchased (201):  {self.results['purchased']}")
        print(f"Sold out (409):   {self.results['sold_out']}")
        print(f"Failed:           {self.results['failed']}")
        print(f"Errors:           {self.results['errors']}")
        print(f"Left in pool:     {remaining}")

        if self.results["response_times"]:
            times = sorted(self.results["response_times"])
            print("\nResponse times:")
            print(f"  Avg: {sum(times)/len(times):.0f}ms")
            print(f"  P50: {times[len(times)//2]:.0f}ms")
            print(f"  P95: {times[int(len(times)*0.95)]:.0f}ms")

        print("\n" + "="*60)
        duplicates = len(self.ticket_ids) - len(set(self.ticket_ids))
        accounted = self.results["purchased"] + remaining == pool_size
        if duplicates == 0 and accounted:
            print("✓ PASS: every ticket sold at most once")
            print(f"  {self.results['purchased']} sold + {remaining} left = {pool_size} in pool")
        else:
            print("✗ FAIL: DOUBLE SALE OR LOST TICKET DETECTED!")
            print(f"  duplicates={duplicates}, sold+left={self.results['purchased'] + remaining}, pool={pool_size}")
        print("="*60 + "\n")


if __name__ == "__main__":
    asyncio.run(StressTest().run())
