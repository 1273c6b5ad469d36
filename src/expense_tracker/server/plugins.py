from advanced_alchemy.extensions.litestar import SQLAlchemyPlugin
from litestar.plugins.pydantic import PydanticPlugin
from litestar.plugins.structlog import StructlogPlugin
from litestar_granian import GranianPlugin

from expense_tracker.config import app as config

structlog = StructlogPlugin(config=config.log)
alchemy = SQLAlchemyPlugin(config=config.alchemy)
granian = GranianPlugin()
pydantic = PydanticPlugin(prefer_alias=True)
