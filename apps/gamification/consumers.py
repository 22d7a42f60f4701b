import logging

from channels.generic.websocket import AsyncJsonWebsocketConsumer

from .signals import company_group_name

logger = logging.getLogger(__name__)


class GamificationConsumer(AsyncJsonWebsocketConsumer):
    """
    Live feed of the company's gamification events

    ws/gamification/ -> joins gamification_<company_id>
    Each message: {"type": "event", "event": {..., "celebrate": bool}, "ranking_changes": [...]}
    """

    async def connect(self):
        user = self.scope.get('user')
        if user is None or not user.is_authenticated or not user.company_id:
            await self.close(code=4401)
            return

        self.group_name = company_group_name(user.company_id)
        await self.channel_layer.group_add(self.group_name, self.channel_name)
        await self.accept()
        logger.info(f"Gamification socket opened for {user.email}")

    async def disconnect(self, code):
        if getattr(self, 'group_name', None):
            await self.channel_layer.group_discard(self.group_name, self.channel_name)

    async def receive_json(self, content, **kwargs):
        if content.get('type') == 'ping':
            await self.send_json({'type': 'pong'})

    async def gamification_event(self, message):
        await self.send_json({
            'type': 'event',
            'event': message['event'],
            'ranking_changes': message.get('ranking_changes', []),
        })
