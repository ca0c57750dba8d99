# models包初始化文件
# 导入全部模型，确保 Base.metadata 中登记了所有表

from wms.models.material import MaterialCategory, MaterialUnit, Material
from wms.models.warehouse import Warehouse, StorageZone, StorageRack, StorageLocation
from wms.models.partner import Supplier, Customer
from wms.models.stock import LocationStock, StockFlow
from wms.models.document import (
    PurchaseOrder, PurchaseOrderDetail,
    SalesOrder, SalesOrderDetail,
    StockInOrder, StockInOrderDetail,
    StockOutOrder, StockOutOrderDetail,
    TransferOrder, TransferOrderDetail,
    InventoryAdjustment, InventoryAdjustmentDetail,
)

__all__ = [
    "MaterialCategory",
    "MaterialUnit",
    "Material",
    "Warehouse",
    "StorageZone",
    "StorageRack",
    "StorageLocation",
    "Supplier",
    "Customer",
    "LocationStock",
    "StockFlow",
    "PurchaseOrder",
    "PurchaseOrderDetail",
    "SalesOrder",
    "SalesOrderDetail",
    "StockInOrder",
    "StockInOrderDetail",
    "StockOutOrder",
    "StockOutOrderDetail",
    "TransferOrder",
    "TransferOrderDetail",
    "InventoryAdjustment",
    "InventoryAdjustmentDetail",
]
