from tortoise import fields, models

from services.figures import EnergyProfile


# -------- Client hierarchy --------
class ClientProfile(models.Model):
    """Energy-accounting trait shared by Main and Sub clients (both own ABT meters)."""
    id = fields.IntField(pk=True)
    name = fields.CharField(max_length=200, index=True)
    mf = fields.FloatField(default=1.0)
    pn = fields.IntField(default=-1)
    # raw operator input ("1,000"); normalised when figures are computed
    dc_capacity_kwp = fields.CharField(max_length=32, null=True)
    ac_capacity_kw = fields.CharField(max_length=32, null=True)
    main_meter_no = fields.CharField(max_length=64, unique=True, index=True)
    main_modem_no = fields.CharField(max_length=64, null=True)
    check_meter_no = fields.CharField(max_length=64, unique=True, null=True, index=True)
    check_modem_no = fields.CharField(max_length=64, null=True)
    voltage_level = fields.CharField(max_length=32, null=True)
    contact_no = fields.CharField(max_length=32, null=True)
    email = fields.CharField(max_length=100, null=True)
    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    kind = "ClientProfile"

    class Meta:
        abstract = True

    def __str__(self) -> str:
        return self.name

    def profile(self) -> EnergyProfile:
        return EnergyProfile.build(self.mf, self.pn, self.dc_capacity_kwp, self.ac_capacity_kw)

    def snapshot(self) -> dict:
        return {
            "id": self.id,
            "kind": self.kind,
            "name": self.name,
            "mf": self.mf,
            "pn": self.pn,
            "dc_capacity_kwp": self.dc_capacity_kwp,
            "ac_capacity_kw": self.ac_capacity_kw,
            "voltage_level": self.voltage_level,
            "contact_no": self.contact_no,
            "email": self.email,
            "main_meter": {"meter_no": self.main_meter_no, "modem_no": self.main_modem_no},
            "check_meter": {"meter_no": self.check_meter_no, "modem_no": self.check_modem_no},
        }


class MainClient(ClientProfile):
    sub_title = fields.CharField(max_length=200, null=True)
    re_type = fields.CharField(max_length=32, null=True)  # solar / wind / hybrid

    kind = "MainClient"

    class Meta:
        table = "main_clients"

    def snapshot(self) -> dict:
        snap = super().snapshot()
        snap.update(sub_title=self.sub_title, re_type=self.re_type)
        return snap


class SubClient(ClientProfile):
    main_client = fields.ForeignKeyField(
        "models.MainClient", related_name="sub_clients", on_delete=fields.CASCADE, index=True
    )
    division_name = fields.CharField(max_length=120, null=True)
    discom = fields.CharField(max_length=32, null=True)
    consumer_no = fields.CharField(max_length=64, null=True)

    kind = "SubClient"

    class Meta:
        table = "sub_clients"

    def snapshot(self) -> dict:
        snap = super().snapshot()
        snap.update(division_name=self.division_name, discom=self.discom, consumer_no=self.consumer_no)
        return snap


class PartClient(models.Model):
    """Share-holder of a SubClient's energy; owns no meters."""
    id = fields.IntField(pk=True)
    name = fields.CharField(max_length=200, index=True)
    sub_client = fields.ForeignKeyField(
        "models.SubClient", related_name="part_clients", on_delete=fields.CASCADE, index=True
    )
    division_name = fields.CharField(max_length=120, null=True)
    consumer_no = fields.CharField(max_length=64, null=True)
    discom = fields.CharField(max_length=32, null=True)
    sharing_percentage = fields.CharField(max_length=16, null=True)  # "25" / "12.5"
    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    kind = "PartClient"

    class Meta:
        table = "part_clients"

    def __str__(self) -> str:
        return self.name

    def snapshot(self) -> dict:
        return {
            "id": self.id,
            "kind": self.kind,
            "name": self.name,
            "division_name": self.division_name,
            "consumer_no": self.consumer_no,
            "discom": self.discom,
            "sharing_percentage": self.sharing_percentage,
        }


# -------- Meter data --------
class MeterRecord(models.Model):
    """One physical meter's normalised interval readings for a billing month."""
    id = fields.IntField(pk=True)
    meter_no = fields.CharField(max_length=64, index=True)
    meter_type = fields.CharField(max_length=20)  # main / check
    client_type = fields.CharField(max_length=20)  # MainClient / SubClient
    client_id = fields.IntField(index=True)
    month = fields.IntField()
    year = fields.IntField()
    created_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        table = "meter_records"
        unique_together = (("meter_no", "month", "year"),)

    def __str__(self) -> str:
        return f"{self.meter_no} {self.month:02d}-{self.year}"


class IntervalEntry(models.Model):
    id = fields.IntField(pk=True)
    record = fields.ForeignKeyField(
        "models.MeterRecord", related_name="entries", on_delete=fields.CASCADE, index=True
    )
    seq = fields.IntField()
    date = fields.CharField(max_length=10)  # dd-mm-yyyy
    interval_start = fields.CharField(max_length=8, null=True)
    interval_end = fields.CharField(max_length=8, null=True)
    active_export = fields.FloatField(default=0.0)
    active_import = fields.FloatField(default=0.0)
    reactive_export = fields.FloatField(default=0.0)
    reactive_import = fields.FloatField(default=0.0)
    net_active = fields.FloatField(null=True)  # bidirectional Active(I-E)

    class Meta:
        table = "interval_entries"
        unique_together = (("record", "seq"),)


class LoggerReading(models.Model):
    """Independent daily check values for one SubClient, date string -> value."""
    id = fields.IntField(pk=True)
    sub_client = fields.ForeignKeyField(
        "models.SubClient", related_name="logger_readings", on_delete=fields.CASCADE, index=True
    )
    month = fields.IntField()
    year = fields.IntField()
    meter_no = fields.CharField(max_length=64, null=True)
    meter_type = fields.CharField(max_length=20, null=True)
    entries = fields.JSONField(default=dict)
    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        table = "logger_readings"
        unique_together = (("sub_client", "month", "year"),)


# -------- Reports --------
class DailyReport(models.Model):
    id = fields.IntField(pk=True)
    main_client = fields.ForeignKeyField(
        "models.MainClient", related_name="daily_reports", on_delete=fields.CASCADE, index=True
    )
    month = fields.IntField()
    year = fields.IntField()
    main_client_detail = fields.JSONField(default=dict)
    main_meter = fields.JSONField(default=dict)  # meter used + totals
    main_figures = fields.JSONField(default=list)
    sub_clients = fields.JSONField(default=list)
    ac_line_loss = fields.JSONField(default=dict)
    notes = fields.JSONField(default=dict)
    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True, index=True)

    class Meta:
        table = "daily_reports"
        unique_together = (("main_client", "month", "year"),)


class LossesCalculation(models.Model):
    id = fields.IntField(pk=True)
    main_client = fields.ForeignKeyField(
        "models.MainClient", related_name="losses_calculations", on_delete=fields.CASCADE, index=True
    )
    month = fields.IntField()
    year = fields.IntField()
    sldc_gross_injection = fields.FloatField(null=True)
    sldc_gross_drawl = fields.FloatField(null=True)
    discom_targets = fields.JSONField(default=dict)
    main_client_detail = fields.JSONField(default=dict)
    main_block = fields.JSONField(default=dict)
    sub_clients = fields.JSONField(default=list)
    sub_overall = fields.JSONField(default=dict)
    difference = fields.JSONField(default=dict)
    sldc = fields.JSONField(default=dict)
    per_discom_totals = fields.JSONField(default=dict)
    excess_injection_ppa = fields.FloatField(null=True)
    energy_drawn_from_discom = fields.FloatField(null=True)
    audit = fields.JSONField(default=dict)
    notes = fields.JSONField(default=dict)
    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True, index=True)

    class Meta:
        table = "losses_calculations"
        unique_together = (("main_client", "month", "year"),)


class TotalReport(models.Model):
    """Main-vs-check meter comparison for a set of MainClients."""
    id = fields.IntField(pk=True)
    client_key = fields.CharField(max_length=255, index=True)  # sorted ids, comma joined
    month = fields.IntField()
    year = fields.IntField()
    clients = fields.JSONField(default=list)
    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True, index=True)

    class Meta:
        table = "total_reports"
        unique_together = (("client_key", "month", "year"),)
