# -*- coding: utf-8 -*-
"""
图片水印工具主程序
功能:为图片添加文字水印,支持九宫格定位、全屏平铺、旋转与批量导出
"""

# 标准库导入
import sys
import os
import logging
from dataclasses import replace
from pathlib import Path

# 第三方库导入
from PIL import Image
from PIL.ImageQt import ImageQt
from PySide6.QtWidgets import (
    QApplication, QWidget, QPushButton, QLabel, QListWidget, QListWidgetItem,
    QHBoxLayout, QVBoxLayout, QFileDialog, QGraphicsView, QGraphicsScene,
    QGraphicsPixmapItem, QSlider, QLineEdit, QComboBox, QMessageBox,
    QDoubleSpinBox, QColorDialog, QCheckBox, QGroupBox, QFrame, QScrollArea, QSplitter
)
from PySide6.QtGui import QPixmap, QImage, QColor
from PySide6.QtCore import Qt, QSize, Signal, QThread

# 本地模块导入
from picmark.batch_worker import batch_export, make_tasks
from picmark.config import WatermarkConfig, color_to_hex
from picmark.config_store import ConfigStore
from picmark.errors import WatermarkError
from picmark.image_io import is_image_file, generate_thumbnail, open_image_fix_orientation
from picmark.watermark import compose_watermark

# 全局常量
APP_NAME = "PicMark - 图片水印工具"
PREVIEW_SIZE = 1200

# 九宫格显示名 -> 位置
POSITION_LABELS = {
    "左上": "top-left", "正上": "top-center", "右上": "top-right",
    "左中": "center-left", "中心": "center", "右中": "center-right",
    "左下": "bottom-left", "正下": "bottom-center", "右下": "bottom-right",
}
LABEL_FOR_POSITION = {v: k for k, v in POSITION_LABELS.items()}

logger = logging.getLogger(__name__)


def pil_to_qpixmap(img):
    """
    将PIL图像转换为Qt的QPixmap对象

    参数:
        img: PIL.Image对象

    返回:
        QPixmap: 转换后的QPixmap对象
    """
    if img.mode != "RGBA":
        img = img.convert("RGBA")
    qim = ImageQt(img)
    pix = QPixmap.fromImage(QImage(qim))
    return pix


def scale_config_for_preview(config, ratio):
    """
    预览图是缩小过的,按比例缩放字号、边距与间距,
    使预览效果与原图导出一致
    """
    return replace(
        config,
        size=max(1.0, config.size * ratio),
        padding=config.padding * ratio,
        spacing=config.spacing * ratio,
    )


class ExportWorker(QThread):
    """
    导出工作线程类

    用于在后台处理图片水印添加任务,避免阻塞UI线程

    信号:
        progress: 发送处理进度信息 (已完成数量, 总数量, 消息)
        finished_signal: 任务完成时发送 (失败数量)
    """
    progress = Signal(int, int, str)  # 已完成数量, 总数量, 消息
    finished_signal = Signal(int)

    def __init__(self, tasks, config, max_workers=2):
        super().__init__()
        self.tasks = tasks
        self.config = config
        self.max_workers = max_workers

    def run(self):
        """执行导出任务的主方法"""
        def on_progress(done, total, success, message):
            prefix = "已保存" if success else "错误"
            self.progress.emit(done, total, f"{prefix}: {message}")

        results = batch_export(
            self.tasks, self.config,
            max_workers=self.max_workers,
            progress_callback=on_progress,
        )
        # 所有任务完成,发送完成信号
        self.finished_signal.emit(sum(1 for ok, _ in results if not ok))


class MainWindow(QWidget):
    """
    图片水印工具主窗口类

    左侧为图片列表,中央为预览区,右侧为水印参数与导出设置
    """
    def __init__(self, store=None):
        super().__init__()
        self.setWindowTitle(APP_NAME)
        self.resize(1400, 800)
        self.store = store or ConfigStore()

        self.setup_styles()

        # 数据模型
        self.image_paths = []   # 图片路径列表
        self.current_index = None  # 当前选中的图片索引
        self.current_preview_image = None
        self.preview_ratio = 1.0
        self.thumb_size = 180  # 缩略图大小
        self.output_dir = None
        self.font_path = None
        self.font_color = QColor(255, 255, 255)
        self.opacity_value = 0.7
        self.rotation_value = 0.0
        self.worker = None

        self.setup_ui()

        # enable drag & drop for window
        self.setAcceptDrops(True)

        # 加载上一次的配置
        self.apply_config(self.store.load_watermark_config())

    def setup_styles(self):
        """设置应用程序的全局样式"""
        style = """
            QWidget {
                font-family: "Microsoft YaHei UI", "Segoe UI", Arial;
                font-size: 9pt;
            }
            QGroupBox {
                font-weight: bold;
                border: 2px solid #d0d0d0;
                border-radius: 6px;
                margin-top: 12px;
                padding-top: 8px;
                background-color: #fafafa;
            }
            QPushButton {
                background-color: #3498db;
                color: white;
                border: none;
                border-radius: 4px;
                padding: 8px 16px;
                font-weight: bold;
            }
            QPushButton:disabled {
                background-color: #bdc3c7;
            }
            QPushButton#secondaryButton {
                background-color: #95a5a6;
            }
            QPushButton#successButton {
                background-color: #27ae60;
            }
            QGraphicsView {
                border: 2px solid #bdc3c7;
                border-radius: 6px;
                background-color: #ecf0f1;
            }
        """
        self.setStyleSheet(style)

    def setup_ui(self):
        """设置用户界面布局"""
        main_splitter = QSplitter(Qt.Horizontal)
        main_splitter.addWidget(self.create_left_panel())
        main_splitter.addWidget(self.create_center_panel())
        main_splitter.addWidget(self.create_right_panel())

        # 设置分割比例
        main_splitter.setStretchFactor(0, 2)  # 左侧
        main_splitter.setStretchFactor(1, 5)  # 中央
        main_splitter.setStretchFactor(2, 3)  # 右侧

        main_layout = QVBoxLayout(self)
        main_layout.addWidget(main_splitter)
        main_layout.setContentsMargins(10, 10, 10, 10)

    def create_left_panel(self):
        """创建左侧图片列表面板"""
        panel = QWidget()
        layout = QVBoxLayout(panel)
        layout.setSpacing(10)

        title = QLabel("📁 图片列表")
        title.setStyleSheet("font-size: 12pt; font-weight: bold; color: #2c3e50;")
        layout.addWidget(title)

        import_btn = QPushButton("➕ 导入图片/文件夹")
        import_btn.setObjectName("successButton")
        import_btn.setMinimumHeight(40)
        import_btn.clicked.connect(self.on_import)
        layout.addWidget(import_btn)

        self.list_widget = QListWidget()
        self.list_widget.setIconSize(QSize(self.thumb_size, self.thumb_size))
        self.list_widget.setSelectionMode(QListWidget.ExtendedSelection)
        self.list_widget.itemClicked.connect(self.on_thumb_clicked)
        layout.addWidget(self.list_widget)
        return panel

    def create_center_panel(self):
        """创建中央预览面板"""
        panel = QWidget()
        layout = QVBoxLayout(panel)

        title = QLabel("🖼️ 预览区域")
        title.setStyleSheet("font-size: 12pt; font-weight: bold; color: #2c3e50;")
        layout.addWidget(title)

        self.view = QGraphicsView()
        self.scene = QGraphicsScene()
        self.view.setScene(self.scene)
        self.preview_item = None
        layout.addWidget(self.view)

        hint = QLabel("💡 提示: 拖拽文件到窗口可直接导入")
        hint.setStyleSheet("color: #7f8c8d; font-size: 8pt; padding: 5px;")
        hint.setAlignment(Qt.AlignCenter)
        layout.addWidget(hint)
        return panel

    def create_right_panel(self):
        """创建右侧控制面板"""
        panel = QWidget()
        scroll = QScrollArea()
        scroll.setWidget(panel)
        scroll.setWidgetResizable(True)
        scroll.setFrameShape(QFrame.NoFrame)

        layout = QVBoxLayout(panel)
        layout.setSpacing(15)
        layout.addWidget(self.create_text_group())
        layout.addWidget(self.create_appearance_group())
        layout.addWidget(self.create_position_group())
        layout.addWidget(self.create_export_group())
        layout.addStretch()
        return scroll

    def create_text_group(self):
        """创建水印文本与字体组"""
        group = QGroupBox("✏️ 水印内容")
        layout = QVBoxLayout()

        self.enabled_cb = QCheckBox("启用水印")
        self.enabled_cb.stateChanged.connect(self.update_preview)
        layout.addWidget(self.enabled_cb)

        self.text_input = QLineEdit()
        self.text_input.setPlaceholderText("输入水印文字...")
        self.text_input.textChanged.connect(self.update_preview)
        layout.addWidget(self.text_input)

        self.font_btn = QPushButton("📁 选择字体文件 (.ttf)")
        self.font_btn.setObjectName("secondaryButton")
        self.font_btn.clicked.connect(self.select_font_file)
        layout.addWidget(self.font_btn)

        size_layout = QHBoxLayout()
        size_layout.addWidget(QLabel("字号:"))
        self.fontsize_spin = QDoubleSpinBox()
        self.fontsize_spin.setDecimals(2)
        self.fontsize_spin.setRange(1, 512)
        self.fontsize_spin.valueChanged.connect(self.update_preview)
        size_layout.addWidget(self.fontsize_spin)
        layout.addLayout(size_layout)

        group.setLayout(layout)
        return group

    def create_appearance_group(self):
        """创建外观设置组"""
        group = QGroupBox("🎨 外观设置")
        layout = QVBoxLayout()

        color_layout = QHBoxLayout()
        color_layout.addWidget(QLabel("颜色:"))
        self.color_btn = QPushButton("#FFFFFF")
        self.color_btn.clicked.connect(self.choose_color)
        color_layout.addWidget(self.color_btn)
        layout.addLayout(color_layout)

        opacity_label = QLabel("不透明度: 70%")
        layout.addWidget(opacity_label)
        self.opacity_slider = QSlider(Qt.Horizontal)
        self.opacity_slider.setRange(0, 100)
        self.opacity_slider.valueChanged.connect(
            lambda v: opacity_label.setText(f"不透明度: {v}%")
        )
        self.opacity_slider.valueChanged.connect(self.on_opacity_changed)
        layout.addWidget(self.opacity_slider)

        rotate_label = QLabel("旋转角度: 0°")
        layout.addWidget(rotate_label)
        self.rotate_slider = QSlider(Qt.Horizontal)
        self.rotate_slider.setRange(-180, 180)
        self.rotate_slider.valueChanged.connect(
            lambda v: rotate_label.setText(f"旋转角度: {v}°")
        )
        self.rotate_slider.valueChanged.connect(self.on_rotation_changed)
        layout.addWidget(self.rotate_slider)

        group.setLayout(layout)
        return group

    def create_position_group(self):
        """创建位置设置组"""
        group = QGroupBox("📍 位置设置")
        layout = QVBoxLayout()

        layout.addWidget(QLabel("九宫格位置:"))
        self.pos_combo = QComboBox()
        self.pos_combo.addItems(list(POSITION_LABELS))
        self.pos_combo.currentIndexChanged.connect(self.update_preview)
        layout.addWidget(self.pos_combo)

        padding_layout = QHBoxLayout()
        padding_layout.addWidget(QLabel("边距:"))
        self.padding_spin = QDoubleSpinBox()
        self.padding_spin.setDecimals(2)
        self.padding_spin.setRange(0, 2000)
        self.padding_spin.valueChanged.connect(self.update_preview)
        padding_layout.addWidget(self.padding_spin)
        layout.addLayout(padding_layout)

        self.fullscreen_cb = QCheckBox("全屏平铺")
        self.fullscreen_cb.stateChanged.connect(self.on_fullscreen_changed)
        layout.addWidget(self.fullscreen_cb)

        spacing_layout = QHBoxLayout()
        spacing_layout.addWidget(QLabel("平铺间距:"))
        self.spacing_spin = QDoubleSpinBox()
        self.spacing_spin.setDecimals(2)
        self.spacing_spin.setRange(0, 2000)
        self.spacing_spin.valueChanged.connect(self.update_preview)
        spacing_layout.addWidget(self.spacing_spin)
        layout.addLayout(spacing_layout)

        group.setLayout(layout)
        return group

    def create_export_group(self):
        """创建导出设置组"""
        group = QGroupBox("💾 导出设置")
        layout = QVBoxLayout()

        self.output_dir_btn = QPushButton("📁 选择输出文件夹")
        self.output_dir_btn.setObjectName("secondaryButton")
        self.output_dir_btn.clicked.connect(self.select_output_dir)
        layout.addWidget(self.output_dir_btn)

        self.output_dir_label = QLabel("未选择")
        self.output_dir_label.setStyleSheet("color: #7f8c8d; padding: 5px;")
        self.output_dir_label.setWordWrap(True)
        layout.addWidget(self.output_dir_label)

        format_layout = QHBoxLayout()
        format_layout.addWidget(QLabel("格式:"))
        self.format_combo = QComboBox()
        self.format_combo.addItems(["jpeg", "png", "webp"])
        format_layout.addWidget(self.format_combo)
        format_layout.addWidget(QLabel("质量:"))
        self.quality_spin = QDoubleSpinBox()
        self.quality_spin.setRange(0.05, 1.0)
        self.quality_spin.setSingleStep(0.05)
        self.quality_spin.setValue(0.9)
        format_layout.addWidget(self.quality_spin)
        layout.addLayout(format_layout)

        prefix_layout = QHBoxLayout()
        prefix_layout.addWidget(QLabel("前缀:"))
        self.prefix_input = QLineEdit("")
        self.prefix_input.setPlaceholderText("可选")
        prefix_layout.addWidget(self.prefix_input)
        layout.addLayout(prefix_layout)

        suffix_layout = QHBoxLayout()
        suffix_layout.addWidget(QLabel("后缀:"))
        self.suffix_input = QLineEdit("_wm")
        suffix_layout.addWidget(self.suffix_input)
        layout.addLayout(suffix_layout)

        self.export_btn = QPushButton("✅ 导出所选图片")
        self.export_btn.setObjectName("successButton")
        self.export_btn.setMinimumHeight(40)
        self.export_btn.clicked.connect(self.on_export)
        layout.addWidget(self.export_btn)

        group.setLayout(layout)
        return group

    def collect_config(self):
        """从界面控件收集当前的水印配置"""
        return WatermarkConfig(
            enabled=self.enabled_cb.isChecked(),
            text=self.text_input.text(),
            position=POSITION_LABELS[self.pos_combo.currentText()],
            size=self.fontsize_spin.value(),
            color=self.font_color.getRgb()[:3],
            opacity=self.opacity_value,
            fullscreen=self.fullscreen_cb.isChecked(),
            spacing=self.spacing_spin.value(),
            rotation=self.rotation_value,
            padding=self.padding_spin.value(),
            font_path=self.font_path,
        )

    def apply_config(self, config):
        """将配置应用到界面控件"""
        self.enabled_cb.setChecked(config.enabled)
        self.text_input.setText(config.text)
        self.fontsize_spin.setValue(config.size)
        self.set_color(QColor(*config.color))
        self.opacity_slider.setValue(int(round(config.opacity * 100)))
        self.rotate_slider.setValue(int(round((config.rotation + 180) % 360 - 180)))
        # 滑块只显示整数，保留配置里的精确值
        self.opacity_value = config.opacity
        self.rotation_value = config.rotation
        self.pos_combo.setCurrentText(LABEL_FOR_POSITION[config.position])
        self.padding_spin.setValue(config.padding)
        self.spacing_spin.setValue(config.spacing)
        self.fullscreen_cb.setChecked(config.fullscreen)
        self.font_path = config.font_path
        if config.font_path:
            self.font_btn.setText(os.path.basename(config.font_path))
        self.on_fullscreen_changed()

    def set_color(self, color):
        self.font_color = color
        hex_code = color_to_hex(color.getRgb()[:3])
        self.color_btn.setText(hex_code)
        self.color_btn.setStyleSheet(
            f"background-color: {hex_code}; color: {'white' if color.lightness() < 128 else 'black'}; font-weight: bold; border-radius: 4px; padding: 8px;"
        )

    def on_fullscreen_changed(self, *_):
        # 平铺模式下九宫格位置与边距不生效
        fullscreen = self.fullscreen_cb.isChecked()
        self.pos_combo.setEnabled(not fullscreen)
        self.padding_spin.setEnabled(not fullscreen)
        self.spacing_spin.setEnabled(fullscreen)
        self.update_preview()

    def on_opacity_changed(self, value):
        self.opacity_value = value / 100
        self.update_preview()

    def on_rotation_changed(self, value):
        self.rotation_value = float(value)
        self.update_preview()

    def select_font_file(self):
        """选择字体文件"""
        path, _ = QFileDialog.getOpenFileName(
            self, "选择字体文件", "", "Font Files (*.ttf *.otf)"
        )
        if path:
            self.font_path = path
            self.font_btn.setText(os.path.basename(path))
            self.update_preview()

    def choose_color(self):
        """选择字体颜色"""
        color = QColorDialog.getColor(self.font_color, self, "选择字体颜色")
        if color.isValid():
            self.set_color(color)
            self.update_preview()

    def dragEnterEvent(self, event):
        """处理拖动进入事件"""
        if event.mimeData().hasUrls():
            event.acceptProposedAction()

    def dropEvent(self, event):
        """处理文件拖放事件"""
        urls = event.mimeData().urls()
        self.add_paths([u.toLocalFile() for u in urls])

    def on_import(self):
        """导入图片按钮点击事件处理"""
        dlg = QFileDialog(self, "选择图片")
        dlg.setFileMode(QFileDialog.ExistingFiles)
        dlg.setNameFilters(["Images (*.png *.jpg *.jpeg *.bmp *.tif *.tiff *.webp *.gif)"])
        if dlg.exec():
            self.add_paths(dlg.selectedFiles())

    def add_paths(self, paths):
        """添加图片路径到列表"""
        new = []
        for p in paths:
            p = Path(p)
            if p.is_dir():
                for f in sorted(p.rglob("*")):
                    if is_image_file(str(f)):
                        new.append(str(f))
            elif p.is_file() and is_image_file(str(p)):
                new.append(str(p))

        for s in new:
            if s in self.image_paths:
                continue
            try:
                thumb = generate_thumbnail(s, max_size=self.thumb_size)
            except WatermarkError as e:
                logger.warning("无法载入 %s: %s", s, e)
                continue
            self.image_paths.append(s)
            item = QListWidgetItem(Path(s).name)
            item.setData(Qt.UserRole, s)
            item.setIcon(pil_to_qpixmap(thumb))
            self.list_widget.addItem(item)

    def on_thumb_clicked(self, item):
        """缩略图点击事件处理"""
        path = item.data(Qt.UserRole)
        self.current_index = self.image_paths.index(path)
        self.show_preview(path)

    def show_preview(self, path):
        """载入预览底图,记录缩放比例"""
        try:
            full = open_image_fix_orientation(path)
        except WatermarkError as e:
            QMessageBox.warning(self, "错误", str(e))
            return
        img = full.copy()
        img.thumbnail((PREVIEW_SIZE, PREVIEW_SIZE), Image.LANCZOS)
        self.preview_ratio = img.width / full.width if full.width else 1.0
        self.current_preview_image = img
        self.update_preview()
        self.view.fitInView(self.scene.itemsBoundingRect(), Qt.KeepAspectRatio)

    def update_preview(self, *_):
        """用当前配置重新合成预览"""
        if self.current_preview_image is None:
            return
        config = scale_config_for_preview(self.collect_config(), self.preview_ratio)
        try:
            composed = compose_watermark(self.current_preview_image, config)
        except WatermarkError as e:
            logger.debug("预览失败: %s", e)
            return
        pix = pil_to_qpixmap(composed)
        if self.preview_item is None:
            self.preview_item = QGraphicsPixmapItem(pix)
            self.scene.addItem(self.preview_item)
        else:
            self.preview_item.setPixmap(pix)

    def select_output_dir(self):
        """选择输出文件夹"""
        d = QFileDialog.getExistingDirectory(self, "选择输出文件夹")
        if d:
            self.output_dir = d
            self.output_dir_label.setText(d)

    def selected_paths(self):
        paths = [item.data(Qt.UserRole) for item in self.list_widget.selectedItems()]
        if not paths and self.current_index is not None:
            paths = [self.image_paths[self.current_index]]
        return paths

    def on_export(self):
        """导出水印图片"""
        paths = self.selected_paths()
        if not paths:
            QMessageBox.warning(self, "提示", "请先选择图片")
            return
        if not self.output_dir:
            QMessageBox.warning(self, "提示", "请选择输出文件夹")
            return
        for src in paths:
            if os.path.abspath(str(Path(src).parent)) == os.path.abspath(self.output_dir):
                QMessageBox.warning(self, "禁止", "默认禁止导出到原文件夹。请选择其他输出文件夹。")
                return

        try:
            config = self.collect_config().validate()
        except WatermarkError as e:
            QMessageBox.warning(self, "错误", str(e))
            return
        self.store.save_watermark_config(config)

        tasks = make_tasks(
            paths,
            self.output_dir,
            output_format=self.format_combo.currentText(),
            quality=round(self.quality_spin.value(), 2),
            prefix=self.prefix_input.text() or "",
            suffix=self.suffix_input.text() or "",
        )
        self.export_btn.setEnabled(False)
        self.worker = ExportWorker(tasks, config)
        self.worker.progress.connect(self.on_export_progress)
        self.worker.finished_signal.connect(self.on_export_finished)
        self.worker.start()

    def on_export_progress(self, done, total, message):
        logger.info("[%d/%d] %s", done, total, message)

    def on_export_finished(self, failed):
        self.export_btn.setEnabled(True)
        if failed:
            QMessageBox.warning(self, "导出完成", f"导出完成,{failed} 张图片失败。")
        else:
            QMessageBox.information(self, "导出完成", "图片导出完成。")

    def closeEvent(self, event):
        self.store.save_watermark_config(self.collect_config())
        super().closeEvent(event)


def launch():
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    app = QApplication.instance() or QApplication(sys.argv)
    w = MainWindow()
    w.show()
    return app.exec()


if __name__ == "__main__":
    sys.exit(launch())
