import weakref
from asyncio import Lock


class GameLocks:
    """Hands out one asyncio Lock per game id so moves on a game run one at a time.

    Locks are held weakly and disappear once no request is waiting on them.
    """

    def __init__(self):
        self._locks = weakref.WeakValueDictionary()

    def get(self, game_id: str) -> Lock:
        """Get the Lock of the specified game_id

        Args:
            game_id (str): ID to identify this game

        Returns:
            Lock: lock guarding moves on this game
        """
        lock = self._locks.get(game_id)
        if lock is None:
            lock = Lock()
            self._locks[game_id] = lock
        return lock

    def __len__(self) -> int:
        return len(self._locks)
