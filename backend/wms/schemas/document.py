"""单据提交/查询 Schema"""
from typing import Optional, List, Any
from pydantic import BaseModel, Field, PrivateAttr, field_validator
from datetime import date, datetime
from decimal import Decimal

from wms.models.enums import AdjustmentType, DocumentStatus


# ===== 提交输入 =====
class DocumentHeader(BaseModel):
    """单据表头

    带 document_id 时表示执行已审核的单据，其余字段忽略；
    不带时按字段新建单据。
    """
    document_id: Optional[int] = Field(None, description="已有单据ID（执行已审核单据时填写）")

    supplier_id: Optional[int] = Field(None, description="供应商ID（采购）")
    customer_id: Optional[int] = Field(None, description="客户ID（销售）")
    warehouse_id: Optional[int] = Field(None, description="仓库ID")
    from_warehouse_id: Optional[int] = Field(None, description="调出仓库ID（调拨）")
    to_warehouse_id: Optional[int] = Field(None, description="调入仓库ID（调拨）")
    adjustment_type: Optional[AdjustmentType] = Field(None, description="调整类型：surplus/shortage/freeze/unfreeze")
    location_id: Optional[int] = Field(None, description="默认库位（采购收货/销售发货的明细未指定库位时使用）")

    document_date: Optional[date] = Field(None, description="单据日期")
    expected_date: Optional[date] = Field(None, description="预计日期（采购/销售）")
    source_type: Optional[str] = Field(None, max_length=20, description="来源类型（入库/出库）")
    source_no: Optional[str] = Field(None, max_length=50, description="来源单号（入库/出库）")
    remark: Optional[str] = Field(None, description="备注")
    operator_id: Optional[int] = Field(None, description="操作人ID")


class DocumentLine(BaseModel):
    """单据明细 / 执行行"""
    detail_id: Optional[int] = Field(None, description="明细ID（执行已有单据时填写）")

    material_id: Optional[int] = Field(None, description="物料ID")
    unit_id: Optional[int] = Field(None, description="单位ID，为空表示基本单位")
    quantity: Optional[Decimal] = Field(None, description="数量（明细单位）；执行已有单据时为空表示剩余全部")
    unit_price: Optional[Decimal] = Field(None, description="单价（采购/销售）")

    location_id: Optional[int] = Field(None, description="库位ID（入库/出库/调整，采购收货/销售发货时指定）")
    from_location_id: Optional[int] = Field(None, description="调出库位ID（调拨）")
    to_location_id: Optional[int] = Field(None, description="调入库位ID（调拨）")

    batch_no: Optional[str] = Field(None, max_length=50, description="批次号")
    production_date: Optional[date] = Field(None, description="生产日期（入库）")
    expiry_date: Optional[date] = Field(None, description="到期日期（入库）")
    remark: Optional[str] = Field(None, max_length=200, description="备注")

    @field_validator('quantity', 'unit_price', mode='before')
    @classmethod
    def parse_decimal(cls, v):
        # 浮点先转字符串，避免 0.1 之类的二进制误差进入 Decimal
        if isinstance(v, float):
            return Decimal(str(v))
        return v


class DocumentSubmit(BaseModel):
    """HTTP 提交体"""
    header: DocumentHeader = Field(default_factory=DocumentHeader)
    lines: List[DocumentLine] = Field(default_factory=list)


# ===== 提交结果 =====
class AppliedDelta(BaseModel):
    """已执行的库存变动（基本单位）"""
    material_id: int
    location_id: int
    quantity_change: Decimal
    frozen_change: Decimal = Decimal("0")
    flow_type: str
    line_no: Optional[int] = None
    detail_id: Optional[int] = None


class DocumentError(BaseModel):
    code: str
    message: str
    line_no: Optional[int] = None
    retryable: bool = False


class DocumentResult(BaseModel):
    """submit_document 返回值：成功时带已执行变动，失败时带错误"""
    ok: bool
    kind: str
    document_id: Optional[int] = None
    order_no: Optional[str] = None
    status: Optional[DocumentStatus] = None
    status_display: Optional[str] = None
    applied_deltas: List[AppliedDelta] = Field(default_factory=list)
    errors: List[DocumentError] = Field(default_factory=list)

    _exception: Any = PrivateAttr(default=None)

    @classmethod
    def failed(cls, kind: str, exc, document_id: Optional[int] = None) -> "DocumentResult":
        result = cls(ok=False, kind=kind, document_id=document_id,
                     errors=[DocumentError(**exc.to_dict())])
        result._exception = exc
        return result

    @property
    def exception(self):
        return self._exception

    def raise_for_errors(self):
        """失败时重新抛出原始异常"""
        if self._exception is not None:
            raise self._exception


# ===== 单据查询 =====
class DocumentDetailResponse(BaseModel):
    """明细响应（数量均为明细单位）"""
    id: int
    line_no: int
    material_id: int
    unit_id: int
    quantity: Decimal
    fulfilled_quantity: Decimal = Field(..., description="已执行数量")
    remaining_quantity: Decimal = Field(..., description="剩余数量")
    unit_price: Optional[Decimal] = None
    amount: Optional[Decimal] = None
    location_id: Optional[int] = None
    from_location_id: Optional[int] = None
    to_location_id: Optional[int] = None
    batch_no: Optional[str] = None
    remark: Optional[str] = None


class DocumentResponse(BaseModel):
    """单据响应"""
    id: int
    kind: str
    kind_display: str
    order_no: str
    status: DocumentStatus
    status_display: str

    supplier_id: Optional[int] = None
    customer_id: Optional[int] = None
    warehouse_id: Optional[int] = None
    from_warehouse_id: Optional[int] = None
    to_warehouse_id: Optional[int] = None
    adjustment_type: Optional[str] = None

    total_amount: Optional[Decimal] = None
    total_quantity: Optional[Decimal] = None
    remark: Optional[str] = None

    created_at: Optional[datetime] = None
    approved_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None

    details: List[DocumentDetailResponse] = Field(default_factory=list)
