"""Brain tumor identification in MRI scans using k-means clustering and XGBoost.

Stages, in pipeline order:

1) ``src.imaging``       - discover and load greyscale scans (raster or DICOM)
2) ``src.augmentation``  - write 4 mirrored / rotated variants per scan
3) ``src.splitting``     - seeded 70/15/15 train / val / test split per class
4) ``src.clustering``    - k-means on pixel intensities and the elbow curve
   ``src.features``      - 12-number cluster feature row per scan
5) ``src.training``      - XGBoost round selection and final fit
6) ``src.evaluation``    - confusion matrix, sensitivity / specificity, ROC / AUC

``src.pipeline.run_pipeline`` runs them end to end; figures come from
``src.visualization``.
"""
