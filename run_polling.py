# run_polling.py
import asyncio
import logging

from app.bot.core import create_bot, create_dispatcher
from app.bot.services.notification import Notifier
from app.core.logging_config import setup_logging

logger = logging.getLogger(__name__)

async def main() -> None:
    """
    Запуск бота в режиме поллинга (локальная разработка, без HTTP API).
    """
    bot = create_bot()
    dp = create_dispatcher(Notifier(bot))

    # Поллинг и веб-хуки не могут работать одновременно
    await bot.delete_webhook(drop_pending_updates=True)
    logger.info("Webhook deleted. Starting polling...")

    await dp.start_polling(bot)


if __name__ == "__main__":
    setup_logging()
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Bot stopped!")
