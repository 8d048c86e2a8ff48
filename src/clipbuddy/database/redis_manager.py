from typing import Any, Dict, List, Optional

import redis


class RedisManager:

    def __init__(self, host: str = 'localhost', port: int = 6379, db: int = 0,
                 password: Optional[str] = None, decode_responses: bool = True,
                 key_prefix: str = 'clipbuddy', socket_timeout: Optional[float] = 5.0,
                 client: Optional[redis.Redis] = None):
        self.client = client or redis.Redis(
            host=host,
            port=port,
            db=db,
            password=password,
            decode_responses=decode_responses,
            socket_timeout=socket_timeout,
            socket_connect_timeout=socket_timeout,
        )
        self.key_prefix = key_prefix
        self._test_connection()

    def _test_connection(self):
        self.client.ping()

    def item_key(self, item_id: str) -> str:
        return f"{self.key_prefix}:item:{item_id}"

    @property
    def index_key(self) -> str:
        return f"{self.key_prefix}:items"

    def save_clipboard_record(self, item_id: str, mapping: Dict[str, str], score: float) -> None:
        pipe = self.client.pipeline(transaction=True)
        pipe.hset(self.item_key(item_id), mapping=mapping)
        pipe.zadd(self.index_key, {item_id: score})
        pipe.execute()

    def get_clipboard_record(self, item_id: str) -> Optional[Dict[str, Any]]:
        data = self.client.hgetall(self.item_key(item_id))
        if not data:
            return None
        return data

    def get_clipboard_ids(self) -> List[str]:
        return self.client.zrevrange(self.index_key, 0, -1)

    def update_clipboard_record(self, item_id: str, **fields: str) -> bool:
        key = self.item_key(item_id)
        if not self.client.exists(key):
            return False

        if fields:
            self.client.hset(key, mapping=fields)
        return True

    def delete_clipboard_record(self, item_id: str) -> bool:
        pipe = self.client.pipeline(transaction=True)
        pipe.delete(self.item_key(item_id))
        pipe.zrem(self.index_key, item_id)
        deleted, _ = pipe.execute()
        return bool(deleted)

    def clear_clipboard_records(self) -> int:
        keys = list(self.client.scan_iter(match=f"{self.key_prefix}:item:*"))
        pipe = self.client.pipeline(transaction=True)
        for key in keys:
            pipe.delete(key)
        pipe.delete(self.index_key)
        pipe.execute()
        return len(keys)

    def health_check(self) -> Dict[str, Any]:
        self.client.ping()
        return {
            "status": "healthy",
            "total_keys": self.client.dbsize(),
            "clipboard_items": self.client.zcard(self.index_key),
        }

    def close(self):
        self.client.close()
