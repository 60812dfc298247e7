# (c) Copyright Datacraft, 2026
"""Readers-writer lock for coroutines."""
import asyncio
from contextlib import asynccontextmanager


class ReadWriteLock:
	"""
	Readers-writer lock with writer preference.

	Any number of readers may hold the lock together; a writer holds it
	alone. New readers wait while a writer is waiting so writes are not
	starved by a steady stream of checks.
	"""

	def __init__(self) -> None:
		self._cond = asyncio.Condition()
		self._readers = 0
		self._writer = False
		self._writers_waiting = 0

	@property
	def readers(self) -> int:
		return self._readers

	@property
	def locked_for_write(self) -> bool:
		return self._writer

	async def acquire_read(self) -> None:
		async with self._cond:
			await self._cond.wait_for(
				lambda: not self._writer and self._writers_waiting == 0
			)
			self._readers += 1

	async def release_read(self) -> None:
		async with self._cond:
			self._readers -= 1
			if self._readers == 0:
				self._cond.notify_all()

	async def acquire_write(self) -> None:
		async with self._cond:
			self._writers_waiting += 1
			try:
				await self._cond.wait_for(
					lambda: not self._writer and self._readers == 0
				)
			except BaseException:
				# Readers blocked behind this writer may proceed
				self._writers_waiting -= 1
				self._cond.notify_all()
				raise
			self._writers_waiting -= 1
			self._writer = True

	async def release_write(self) -> None:
		async with self._cond:
			self._writer = False
			self._cond.notify_all()

	@asynccontextmanager
	async def read(self):
		await self.acquire_read()
		try:
			yield
		finally:
			await self.release_read()

	@asynccontextmanager
	async def write(self):
		await self.acquire_write()
		try:
			yield
		finally:
			await self.release_write()
