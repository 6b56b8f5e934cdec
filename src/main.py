import asyncio

from bootstrap import build_services
from config.settings import settings
from exceptions.trading_exceptions import TradingError
from utils.logger import Logger

logger = Logger.get_logger(__name__)


async def main():
    logger.info(f"🚀 Iniciando motor de bots (modo {settings.MODE})")
    services = build_services()

    try:
        if settings.is_demo:
            await services.connections.enable_demo_mode()
        else:
            # Los bots activos se reanudan desde el listener de conexión
            await services.connections.connect(testnet=settings.is_testnet)
    except (TradingError, ValueError) as e:
        logger.error(f"❌ No se pudo conectar con el exchange: {e}")
        logger.info("⏸️ Los bots activos se reanudarán al establecer la conexión")

    stop_event = asyncio.Event()
    try:
        await stop_event.wait()
    except asyncio.CancelledError:
        logger.info("\nDeteniendo motor...")
    finally:
        # El estado persistido no cambia: los bots activos se reanudan en el próximo arranque
        await services.scheduler.shutdown()
        services.database.engine.dispose()
        logger.info("Motor detenido correctamente.")


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass
