"""
API Blueprints for the MOI portal gateway.

Provides:
- traffic_sync_bp: traffic-sync orchestration endpoints
- moi_proxy_bp: pass-through proxy to the MOI web API (/token, /api/*)
"""
from .moi_proxy import moi_proxy_bp
from .traffic_sync import traffic_sync_bp

__all__ = ['moi_proxy_bp', 'traffic_sync_bp']
