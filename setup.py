from setuptools import setup


setup(
    name="invoice-doctor",
    version="0.1.0",
    description="Validation and price-consistency checks for spreadsheet-exported sales invoices",
    packages=["invoice_doctor"],
    python_requires=">=3.10",
    install_requires=[
        "pandas",
        "chardet",
        "openpyxl",
        "streamlit",
    ],
    entry_points={
        "console_scripts": [
            "invoice-doctor=invoice_doctor.cli:main",
        ]
    },
)
