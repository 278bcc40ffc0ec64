"""
locator_pipeline.pipelines — batch job orchestrators.

Each pipeline module exports a run() async function:

    from locator_pipeline.pipelines import geometry_migration, installer_import

    result = await installer_import.run(csv_bytes, mode="append")
    result = await geometry_migration.run("data/us-zip-codes.json", country="us")

exports holds the CSV writers shared with the API export endpoints.
"""
