from .editing_engine import Engine
from .render_scheduler import RenderResult, RenderScheduler
