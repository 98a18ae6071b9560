from django.apps import AppConfig


class SupplierappConfig(AppConfig):
    name = "supplierapp"
    verbose_name = "Supplier Pro"
