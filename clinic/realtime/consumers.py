import json
from channels.generic.websocket import AsyncWebsocketConsumer

from clinic.services.notify import GROUP


class UpdatesConsumer(AsyncWebsocketConsumer):
    GROUP = GROUP

    async def connect(self):
        await self.channel_layer.group_add(self.GROUP, self.channel_name)
        await self.accept()
        await self.send(json.dumps({"type": "welcome", "message": "connected"}))

    async def disconnect(self, close_code):
        await self.channel_layer.group_discard(self.GROUP, self.channel_name)

    async def entity_changed(self, event):
        # event: {"type": "entity.changed", "entity": "Patient", "action": "update", "id": "...", "ts": "..."}
        await self.send(json.dumps(event))
