"""
Окно «Rasterizer»: показывает кадр программного растеризатора (Tkinter).

Ядро отдаёт буфер цвета со строкой 0 первой; на экране строка 0 должна быть
внизу (как у glDrawPixels), поэтому кадр переворачивается по вертикали здесь,
при выводе, а не в растеризаторе.

Запуск:
    python main.py                         # окно со сферой 512x512
    python main.py --save sphere.ppm       # без окна: сохранить кадр и выйти
"""
import argparse
import logging
import tkinter as tk
from tkinter import ttk, filedialog, messagebox

import numpy as np

from geometry import SphereConfig
from projection import Frustum
from zbuffer import FrameStore, render_scene

logger = logging.getLogger(__name__)


def setup_default_logging(level="INFO"):
    """Минимальная настройка логирования (ничего не делает, если обработчики уже есть)."""
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)
    if logging.getLogger().handlers:
        return
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


class RasterizerApp:
    """Окно с холстом и панелью параметров сферы."""

    def __init__(self, root, sphere: SphereConfig, width=512, height=512, frustum=None):
        self.root = root
        self.root.title('Rasterizer')
        self.width = width
        self.height = height
        self.frustum = frustum or Frustum()
        self.frame = FrameStore(width, height)

        self.stacks = tk.IntVar(value=sphere.stacks)
        self.slices = tk.IntVar(value=sphere.slices)
        self.radius = tk.DoubleVar(value=sphere.radius)
        self.z_offset = tk.DoubleVar(value=sphere.z_offset)

        self.create_ui()

        # Первый рендер
        self.root.after(100, self.render)

    def create_ui(self):
        """Создает панель параметров, холст и строку состояния."""
        top_frame = ttk.Frame(self.root)
        top_frame.pack(side=tk.TOP, fill=tk.X, padx=10, pady=10)

        sphere_frame = ttk.LabelFrame(top_frame, text="Сфера", padding=10)
        sphere_frame.pack(side=tk.LEFT, padx=5)

        fields = [
            ("stacks", self.stacks, 1, 200, 1),
            ("slices", self.slices, 3, 400, 1),
            ("radius", self.radius, 0.1, 10.0, 0.1),
            ("z offset", self.z_offset, -50.0, 0.0, 0.5),
        ]
        for row, (label, var, lo, hi, step) in enumerate(fields):
            ttk.Label(sphere_frame, text=label).grid(row=row, column=0, sticky=tk.W)
            ttk.Spinbox(sphere_frame, from_=lo, to=hi, increment=step,
                        textvariable=var, width=8).grid(row=row, column=1, padx=4, pady=1)

        actions = ttk.Frame(top_frame)
        actions.pack(side=tk.LEFT, padx=5)
        ttk.Button(actions, text="Рендер", command=self.render).pack(fill=tk.X, pady=2)
        ttk.Button(actions, text="Сохранить PPM", command=self.save_ppm).pack(fill=tk.X, pady=2)

        self.canvas = tk.Canvas(self.root, bg='black', width=self.width, height=self.height)
        self.canvas.pack(side=tk.TOP)

        self.info_label = ttk.Label(self.root, text="", font=('Arial', 10))
        self.info_label.pack(side=tk.BOTTOM, fill=tk.X, padx=10, pady=5)

    def sphere_config(self):
        return SphereConfig(
            stacks=self.stacks.get(),
            slices=self.slices.get(),
            radius=self.radius.get(),
            z_offset=self.z_offset.get(),
        )

    def render(self):
        """Один проход рендеринга и вывод на холст."""
        try:
            sphere = self.sphere_config().validate()
        except (ValueError, tk.TclError) as e:
            messagebox.showerror("Параметры", str(e))
            return

        _, stats = render_scene(sphere, self.frustum, self.width, self.height, frame=self.frame)
        self.display_image(self.frame.rows())
        self.info_label.config(
            text=f"Треугольников: {stats.triangles} | вырожденных: {stats.degenerate} | "
                 f"за камерой: {stats.behind_camera} | пикселей: {stats.pixels_written}"
        )

    def display_image(self, image):
        """Отображает буфер цвета на canvas (строка 0 — внизу, как у glDrawPixels)."""
        try:
            flipped = np.ascontiguousarray(np.flipud(image))
            height, width = flipped.shape[:2]

            # Tkinter принимает PPM данные
            ppm_header = f'P6 {width} {height} 255 '.encode()
            photo = tk.PhotoImage(width=width, height=height,
                                  data=ppm_header + flipped.tobytes(), format='PPM')

            self.canvas.delete('all')
            self.canvas.create_image(0, 0, anchor=tk.NW, image=photo)

            # Сохраняем ссылку, чтобы изображение не удалилось
            self.canvas.image = photo

        except tk.TclError:
            logger.exception("Ошибка отображения кадра")

    def save_ppm(self):
        filename = filedialog.asksaveasfilename(
            defaultextension='.ppm', filetypes=[('PPM', '*.ppm'), ('All files', '*.*')]
        )
        if not filename:
            return
        try:
            self.frame.save_ppm(filename)
        except OSError as e:
            messagebox.showerror("Ошибка сохранения", str(e))


def parse_args(argv=None):
    defaults = SphereConfig()
    parser = argparse.ArgumentParser(description="Программный растеризатор с Z-буфером")
    parser.add_argument("--width", type=int, default=512)
    parser.add_argument("--height", type=int, default=512)
    parser.add_argument("--stacks", type=int, default=defaults.stacks)
    parser.add_argument("--slices", type=int, default=defaults.slices)
    parser.add_argument("--radius", type=float, default=defaults.radius)
    parser.add_argument("--z-offset", type=float, default=defaults.z_offset)
    parser.add_argument("--save", metavar="PATH", help="сохранить кадр в PPM и выйти без окна")
    parser.add_argument("--log-level", default="INFO")
    return parser.parse_args(argv)


def main(argv=None):
    """Запуск приложения"""
    args = parse_args(argv)
    setup_default_logging(args.log_level)
    sphere = SphereConfig(args.stacks, args.slices, args.radius, args.z_offset)

    if args.save:
        frame, _ = render_scene(sphere, width=args.width, height=args.height)
        frame.save_ppm(args.save)
        return

    root = tk.Tk()
    RasterizerApp(root, sphere, args.width, args.height)
    root.mainloop()


if __name__ == '__main__':
    main()
